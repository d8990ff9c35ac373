"""Thread coordination for multi-threaded test scenarios.

- signal(): one-shot rendezvous between two threads. Everything the
  signalling thread did before Signaler.signal() is visible to the waiting
  thread once Waiter.wait() returns.
- MessageBuffer / await_messages(): a lock-guarded list filled by producer
  threads, and a bounded polling wait for it to reach a target size.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
import weakref
from collections.abc import Iterator
from typing import Generic, TypeVar

import anyio

from .errors import BarrierTimeout

__all__ = [
    "Signaler",
    "Waiter",
    "signal",
    "MessageBuffer",
    "await_messages",
    "await_messages_async",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BARRIER_LIMIT = 1.0
DEFAULT_BARRIER_INTERVAL = 0.05

_SIGNALED = object()
_DISCONNECTED = object()


def _disconnect(channel: queue.Queue) -> None:
    try:
        channel.put_nowait(_DISCONNECTED)
    except queue.Full:
        # The signal is already in flight; the waiter will see that instead
        pass


class Signaler:
    """Sending half of a rendezvous.

    If it is closed or garbage-collected without signalling, the waiter is
    released as though it had been signalled.
    """

    def __init__(self, channel: queue.Queue) -> None:
        self._channel = channel
        self._sent = False
        self._finalizer = weakref.finalize(self, _disconnect, channel)

    def signal(self) -> None:
        """Release the waiter. May only be called once."""
        if self._sent:
            raise RuntimeError("Signaler has already signalled")
        self._sent = True
        self._finalizer.detach()
        self._channel.put_nowait(_SIGNALED)

    def close(self) -> None:
        """Drop the sending side without signalling."""
        self._finalizer()


class Waiter:
    """Receiving half of a rendezvous."""

    def __init__(self, channel: queue.Queue) -> None:
        self._channel = channel
        self._received: object | None = None

    @property
    def signaled(self) -> bool:
        """True if released by a real signal rather than a disconnect."""
        return self._received is _SIGNALED

    def wait(self) -> None:
        """Block until signalled or until the signaler is gone."""
        if self._received is None:
            self._received = self._channel.get()


def signal() -> tuple[Signaler, Waiter]:
    """Create a connected (Signaler, Waiter) pair."""
    channel: queue.Queue = queue.Queue(maxsize=1)
    return Signaler(channel), Waiter(channel)


class MessageBuffer(Generic[T]):
    """Ordered list shared between producer threads and pollers.

    The lock is only held for a single append or length read.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[T] = []

    def append(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def snapshot(self) -> list[T]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())


def _observe(buffer: MessageBuffer, previous: int) -> int:
    current = len(buffer)
    if current != previous:
        logger.info(f"message collector has received {current} messages")
    return current


def await_messages(
    expected_count: int,
    buffer: MessageBuffer,
    limit: float = DEFAULT_BARRIER_LIMIT,
    *,
    interval: float = DEFAULT_BARRIER_INTERVAL,
) -> None:
    """Block until ``buffer`` holds at least ``expected_count`` items.

    Args:
        expected_count: Target length
        buffer: The shared buffer
        limit: Seconds before giving up
        interval: Seconds between polls

    Raises:
        BarrierTimeout: If the target isn't reached within ``limit``
    """
    previous = 0
    begin = time.monotonic()
    while True:
        current = _observe(buffer, previous)
        if current >= expected_count:
            return
        if time.monotonic() - begin > limit:
            raise BarrierTimeout(limit, current, expected_count)
        previous = current
        time.sleep(interval)


async def await_messages_async(
    expected_count: int,
    buffer: MessageBuffer,
    limit: float = DEFAULT_BARRIER_LIMIT,
    *,
    interval: float = DEFAULT_BARRIER_INTERVAL,
) -> None:
    """Async ``await_messages``; cancellable, deadline enforced by anyio."""
    previous = 0
    try:
        with anyio.fail_after(limit):
            while True:
                previous = _observe(buffer, previous)
                if previous >= expected_count:
                    return
                await anyio.sleep(interval)
    except TimeoutError:
        raise BarrierTimeout(limit, previous, expected_count) from None
