import asyncio

import pytest

from certifyme.services.timer import CountdownTimer, format_seconds, time_budget


@pytest.mark.parametrize("count", [0, 1, 2, 7, 50])
def test_budget_is_two_minutes_per_question(count) -> None:
    assert time_budget(count) == count * 120
    assert CountdownTimer.for_questions(count).remaining == count * 120


def test_tick_reports_expiry_once() -> None:
    timer = CountdownTimer(3)
    assert [timer.tick() for _ in range(5)] == [False, False, True, False, False]
    assert timer.remaining == 0
    assert timer.expired


def test_cancelled_timer_does_not_tick() -> None:
    timer = CountdownTimer(10)
    timer.tick()
    timer.cancel()
    assert timer.tick() is False
    assert timer.remaining == 9


def test_format_and_warning() -> None:
    assert format_seconds(240) == "04:00"
    assert format_seconds(59) == "00:59"
    timer = CountdownTimer(61, warning_seconds=60)
    assert not timer.is_warning
    timer.tick()
    timer.tick()
    assert timer.is_warning
    assert timer.format_remaining() == "00:59"


def test_run_fires_on_expire_once_after_budget() -> None:
    fired = []
    sleeps = []

    async def on_expire():
        fired.append(True)

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    timer = CountdownTimer.for_questions(2, on_expire=on_expire)
    asyncio.run(timer.run(sleep=fake_sleep))

    assert fired == [True]
    assert len(sleeps) == 240
    assert set(sleeps) == {1}


def test_cancel_from_outside_stops_run() -> None:
    fired = []

    async def on_expire():
        fired.append(True)

    async def scenario():
        timer = CountdownTimer(5, on_expire=on_expire)
        task = timer.start()
        await asyncio.sleep(0)
        timer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return timer

    timer = asyncio.run(scenario())
    assert fired == []
    assert timer.remaining == 5
