"""Cooperative one-second countdown sources for quiz sessions.

A :class:`Ticker` is armed with a callback and fires it once per interval
until cancelled. Both implementations run on the caller's thread: the
session machine never sees two callbacks interleave.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional, Protocol

__all__ = [
    "AsyncioTicker",
    "ClockTicker",
    "TickCallback",
    "Ticker",
]

TickCallback = Callable[[], None]


class Ticker(Protocol):
    @property
    def armed(self) -> bool: ...

    def arm(self, callback: TickCallback) -> None: ...

    def cancel(self) -> None: ...


class ClockTicker:
    """Polled ticker driven by a monotonic clock.

    Suited to blocking front ends: call :meth:`poll` whenever control
    returns (e.g. after reading a line of input) and the callback fires
    once for every whole interval that elapsed since the last firing.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        interval: float = 1.0,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._clock = clock
        self._interval = interval
        self._callback: Optional[TickCallback] = None
        self._last: float = 0.0

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def arm(self, callback: TickCallback) -> None:
        self._callback = callback
        self._last = self._clock()

    def cancel(self) -> None:
        self._callback = None

    def poll(self) -> int:
        """Fire pending ticks; return how many were delivered."""

        fired = 0
        now = self._clock()
        while (
            self._callback is not None
            and now - self._last >= self._interval
        ):
            self._last += self._interval
            callback = self._callback
            callback()
            fired += 1
        return fired


class AsyncioTicker:
    """Ticker that reschedules itself on an asyncio event loop."""

    def __init__(
        self,
        *,
        interval: float = 1.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._callback: Optional[TickCallback] = None

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def arm(self, callback: TickCallback) -> None:
        self.cancel()
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._callback = callback
        self._schedule()

    def cancel(self) -> None:
        self._callback = None
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        assert self._loop is not None
        self._handle = self._loop.call_later(self._interval, self._fire)

    def _fire(self) -> None:
        self._handle = None
        callback = self._callback
        if callback is None:
            return
        callback()
        if self._callback is not None:
            self._schedule()
