"""Deterministic ticker used to drive sessions without real time."""

from __future__ import annotations

from typing import Optional

from quizkit.timer import TickCallback


class ManualTicker:
    """Ticker whose ticks are delivered by the test via :meth:`fire`."""

    def __init__(self) -> None:
        self._callback: Optional[TickCallback] = None
        self.arm_calls = 0
        self.cancel_calls = 0

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def arm(self, callback: TickCallback) -> None:
        self.arm_calls += 1
        self._callback = callback

    def cancel(self) -> None:
        self.cancel_calls += 1
        self._callback = None

    def fire(self, count: int = 1) -> int:
        """Deliver up to ``count`` ticks; stop early once cancelled."""

        fired = 0
        for _ in range(count):
            callback = self._callback
            if callback is None:
                break
            callback()
            fired += 1
        return fired


class FakeClock:
    """Monotonic clock stand-in advanced explicitly by tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
