"""Harness exception classes.

node-harness v0.1.0

None of these are meant to be caught and retried by a test: they end the
enclosing test with a descriptive message. The timeout family also derives
from AssertionError so pytest reports them as failures rather than errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

__all__ = [
    "HarnessError",
    "StartupFailure",
    "PathResolutionFailure",
    "StateCleanupError",
    "TerminationFailure",
    "HarnessTimeout",
    "ReadinessTimeout",
    "ExitTimeout",
    "BarrierTimeout",
]


class HarnessError(Exception):
    """Base harness exception."""
    pass


class StartupFailure(HarnessError):
    """The node process could not be spawned.

    Attributes:
        argv: The command line that failed to launch
    """

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        super().__init__(f"Couldn't start {self.argv[0] if self.argv else '<empty>'}: {reason}")


class PathResolutionFailure(HarnessError):
    """The invocation path has no build-output marker segment.

    Attributes:
        invocation_path: The path that was inspected
        marker: The directory name that was expected in it
    """

    def __init__(self, invocation_path: str, marker: str) -> None:
        self.invocation_path = invocation_path
        self.marker = marker
        super().__init__(
            f"Can't locate the build output directory: no '{marker}/<flavour>' "
            f"segment in invocation path {invocation_path!r}"
        )


class StateCleanupError(HarnessError):
    """A persisted state file exists but could not be deleted."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Couldn't remove preexisting database at {path}: {reason}")


class TerminationFailure(HarnessError):
    """The external termination utility could not be run."""
    pass


class HarnessTimeout(HarnessError, AssertionError):
    """A polling deadline expired.

    Attributes:
        limit: The deadline in seconds
    """

    def __init__(self, limit: float, message: str) -> None:
        self.limit = limit
        super().__init__(message)


class ReadinessTimeout(HarnessTimeout):
    """No log line matched before the deadline."""

    def __init__(self, limit: float, pattern: str) -> None:
        self.pattern = pattern
        super().__init__(
            limit,
            f"Timeout: waited for more than {round(limit * 1000)}ms for log pattern {pattern!r}",
        )


class ExitTimeout(HarnessTimeout):
    """The node process was still alive at the deadline."""

    def __init__(self, limit: float, pid: int | None = None) -> None:
        self.pid = pid
        super().__init__(
            limit,
            f"Waited fruitlessly for Node termination for {round(limit * 1000)}ms (pid={pid})",
        )


class BarrierTimeout(HarnessTimeout):
    """A shared collection did not reach its target size in time."""

    def __init__(self, limit: float, received: int, expected: int) -> None:
        self.received = received
        self.expected = expected
        super().__init__(
            limit,
            f"After {round(limit * 1000)}ms, message collector has received only "
            f"{received} messages, not {expected}",
        )
