"""Tests for the asyncio countdown."""
import asyncio

import pytest

from vocamaster.services.quiz_timer import Countdown


@pytest.mark.asyncio
async def test_countdown_ticks_then_stops() -> None:
    ticks = []
    countdown = Countdown(3, 0.01, lambda: ticks.append(1))
    countdown.start()
    assert countdown.running

    await asyncio.sleep(0.2)
    assert len(ticks) == 3
    assert not countdown.running


@pytest.mark.asyncio
async def test_cancel_stops_ticks() -> None:
    ticks = []
    countdown = Countdown(10, 0.01, lambda: ticks.append(1))
    countdown.start()
    await asyncio.sleep(0.025)
    countdown.cancel()
    seen = len(ticks)

    await asyncio.sleep(0.1)
    assert len(ticks) == seen
    assert not countdown.running


@pytest.mark.asyncio
async def test_cancel_from_inside_tick() -> None:
    ticks = []

    def on_tick() -> None:
        ticks.append(1)
        countdown.cancel()

    countdown = Countdown(5, 0.01, on_tick)
    countdown.start()
    await asyncio.sleep(0.1)
    assert ticks == [1]


@pytest.mark.asyncio
async def test_restart_resets_tick_count() -> None:
    ticks = []
    countdown = Countdown(2, 0.02, lambda: ticks.append(1))
    countdown.start()
    await asyncio.sleep(0.03)
    countdown.start()
    await asyncio.sleep(0.15)
    assert len(ticks) == 3


def test_start_requires_running_loop() -> None:
    with pytest.raises(RuntimeError):
        Countdown(1, 0.01, lambda: None).start()


if __name__ == "__main__":
    pytest.main([__file__])
