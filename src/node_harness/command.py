"""Command-line token builder."""

from __future__ import annotations

from collections.abc import Iterator

__all__ = ["CommandConfig"]


class CommandConfig:
    """Ordered, append-only list of command-line tokens.

    No validation is done on flags or values; tokens are handed to the
    process verbatim and in call order.

    Example:
        config = (
            CommandConfig()
            .pair("--neighbors", "1.2.3.4:5678")
            .opt("--dump-config")
        )
        config.args  # ["--neighbors", "1.2.3.4:5678", "--dump-config"]
    """

    def __init__(self) -> None:
        self.args: list[str] = []

    def opt(self, option: str) -> CommandConfig:
        """Append a flag-only token."""
        self.args.append(option)
        return self

    def pair(self, option: str, value: str) -> CommandConfig:
        """Append a flag followed by its value."""
        self.args.append(option)
        self.args.append(value)
        return self

    def extend(self, other: CommandConfig | None) -> CommandConfig:
        """Append every token of another config, in order."""
        if other is not None:
            self.args.extend(other.args)
        return self

    def __iter__(self) -> Iterator[str]:
        return iter(self.args)

    def __len__(self) -> int:
        return len(self.args)

    def __repr__(self) -> str:
        return f"CommandConfig({self.args!r})"
