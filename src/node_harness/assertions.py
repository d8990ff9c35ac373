"""Small assertion and networking helpers for node tests."""

from __future__ import annotations

import re
import socket

__all__ = ["assert_ends_with", "assert_matches", "find_free_port", "to_millis"]


def assert_ends_with(string: str, suffix: str) -> None:
    assert string.endswith(suffix), f"'{string}' did not end with '{suffix}'"


def assert_matches(string: str, regex: str) -> None:
    assert re.search(regex, string) is not None, f"'{string}' was not matched by '{regex}'"


def to_millis(seconds: float) -> int:
    """Whole milliseconds in a duration given in seconds."""
    return int(seconds * 1000)


def find_free_port() -> int:
    """Ask the OS for a UDP port on 127.0.0.1 that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
