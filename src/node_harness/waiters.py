"""Polling waits on a running node: log readiness and process exit.

Both waits are plain bounded retry loops against time.monotonic(). When the
deadline passes they raise a HarnessTimeout, which ends the test; they never
return a "not yet" value for the caller to handle.

The ``*_async`` variants run the same loops as anyio tasks with the deadline
attached through ``anyio.fail_after``, so they can also be cancelled from
outside.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import TYPE_CHECKING

import anyio

from .errors import ExitTimeout, ReadinessTimeout

if TYPE_CHECKING:
    from .supervisor import NodeProcess

__all__ = [
    "UNBOUNDED_WAIT",
    "wait_for_log",
    "wait_for_exit",
    "wait_for_log_async",
    "wait_for_exit_async",
]

logger = logging.getLogger(__name__)

# 0xFFFFFFFF ms, effectively forever for a test run
UNBOUNDED_WAIT = 0xFFFFFFFF / 1000

DEFAULT_LOG_INTERVAL = 0.2
DEFAULT_EXIT_INTERVAL = 0.1


def read_log(path: Path) -> str:
    """Read the whole log file; a file that doesn't exist yet reads as empty."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ""


def _refresh(handle: NodeProcess, regex: re.Pattern[str]) -> re.Match[str] | None:
    handle.logfile_contents = read_log(handle.log_path)
    match = regex.search(handle.logfile_contents)
    if match is not None:
        handle.ready = True
    return match


def wait_for_log(
    handle: NodeProcess,
    pattern: str,
    timeout: float | None = None,
    *,
    interval: float = DEFAULT_LOG_INTERVAL,
) -> re.Match[str]:
    """Block until the node's log file matches ``pattern``.

    The whole file is re-read on every attempt and stored as the handle's
    ``logfile_contents``.

    Args:
        handle: The running node
        pattern: Regular expression searched for anywhere in the log
        timeout: Seconds to wait; None means practically unbounded
        interval: Seconds to sleep between attempts

    Returns:
        The match object of the first successful search

    Raises:
        ReadinessTimeout: If the deadline passes without a match
    """
    regex = re.compile(pattern)
    limit = UNBOUNDED_WAIT if timeout is None else timeout
    started_at = time.monotonic()

    while True:
        match = _refresh(handle, regex)
        if match is not None:
            logger.debug(
                f"Log matched {pattern!r} after {time.monotonic() - started_at:.3f}s"
            )
            return match
        if time.monotonic() - started_at >= limit:
            raise ReadinessTimeout(limit, pattern)
        time.sleep(interval)


def wait_for_exit(
    handle: NodeProcess,
    timeout: float,
    *,
    interval: float = DEFAULT_EXIT_INTERVAL,
) -> int | None:
    """Block until the node process exits.

    Returns:
        The raw exit code, or None if the process was ended by a signal

    Raises:
        ExitTimeout: If the process is still running at the deadline
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = handle.poll()
        if status is not None:
            logger.debug(f"Node exited pid={handle.pid} returncode={status.returncode}")
            return status.code
        time.sleep(interval)
    raise ExitTimeout(timeout, handle.pid)


async def wait_for_log_async(
    handle: NodeProcess,
    pattern: str,
    timeout: float | None = None,
    *,
    interval: float = DEFAULT_LOG_INTERVAL,
) -> re.Match[str]:
    """Async ``wait_for_log``; cancellable, deadline enforced by anyio."""
    regex = re.compile(pattern)
    limit = UNBOUNDED_WAIT if timeout is None else timeout

    try:
        with anyio.fail_after(limit):
            while True:
                match = _refresh(handle, regex)
                if match is not None:
                    return match
                await anyio.sleep(interval)
    except TimeoutError:
        raise ReadinessTimeout(limit, pattern) from None


async def wait_for_exit_async(
    handle: NodeProcess,
    timeout: float,
    *,
    interval: float = DEFAULT_EXIT_INTERVAL,
) -> int | None:
    """Async ``wait_for_exit``; cancellable, deadline enforced by anyio."""
    try:
        with anyio.fail_after(timeout):
            while True:
                status = handle.poll()
                if status is not None:
                    return status.code
                await anyio.sleep(interval)
    except TimeoutError:
        raise ExitTimeout(timeout, handle.pid) from None
