from __future__ import annotations

import asyncio

import pytest

from fixtures import FIXED_NOW
from quizkit.session import QuizSession, SessionStatus
from quizkit.timer import AsyncioTicker, ClockTicker


def test_clock_ticker_fires_once_per_elapsed_interval(clock) -> None:
    ticks = []
    ticker = ClockTicker(clock)

    assert ticker.poll() == 0
    ticker.arm(lambda: ticks.append(clock()))
    assert ticker.armed
    clock.advance(0.5)
    assert ticker.poll() == 0
    clock.advance(0.6)
    assert ticker.poll() == 1
    clock.advance(3.0)
    assert ticker.poll() == 3
    assert len(ticks) == 4


def test_clock_ticker_stops_when_callback_cancels(clock) -> None:
    ticker = ClockTicker(clock)
    calls = []

    def callback() -> None:
        calls.append(1)
        if len(calls) == 2:
            ticker.cancel()

    ticker.arm(callback)
    clock.advance(10)

    assert ticker.poll() == 2
    assert not ticker.armed
    clock.advance(10)
    assert ticker.poll() == 0


def test_clock_ticker_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        ClockTicker(interval=0)
    with pytest.raises(ValueError):
        AsyncioTicker(interval=-1)


def test_clock_ticker_drives_session_to_expiry(sample_quiz, clock) -> None:
    ticker = ClockTicker(clock)
    session = QuizSession(sample_quiz, ticker=ticker, now=lambda: FIXED_NOW)
    session.start()

    clock.advance(59)
    ticker.poll()
    assert session.remaining_seconds == 1

    clock.advance(30)
    ticker.poll()

    assert session.status is SessionStatus.SUBMITTED
    assert session.state.expired
    assert session.result is not None
    assert not ticker.armed


def test_asyncio_ticker_reschedules_until_cancelled() -> None:
    async def scenario() -> list[int]:
        ticker = AsyncioTicker(interval=0.01)
        calls: list[int] = []

        def callback() -> None:
            calls.append(len(calls))
            if len(calls) == 3:
                ticker.cancel()

        ticker.arm(callback)
        await asyncio.sleep(0.2)
        assert not ticker.armed
        return calls

    assert asyncio.run(scenario()) == [0, 1, 2]


def test_asyncio_ticker_cancel_before_first_tick() -> None:
    async def scenario() -> int:
        ticker = AsyncioTicker(interval=0.01)
        calls: list[int] = []
        ticker.arm(lambda: calls.append(1))
        ticker.cancel()
        await asyncio.sleep(0.05)
        return len(calls)

    assert asyncio.run(scenario()) == 0
