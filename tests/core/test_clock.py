from pytest import mark, raises
import asyncio
import datetime as dt

from sproutsim.sim.clock import TimeController, RunMode, MODE_STEPS


@mark.parametrize("mode, step", [
    (RunMode.PLAY_15M, dt.timedelta(minutes=15)),
    (RunMode.FWD_1H, dt.timedelta(hours=1)),
    (RunMode.FWD_2H, dt.timedelta(hours=2)),
    (RunMode.FWD_1D, dt.timedelta(days=1)),
    (RunMode.REW_1H, dt.timedelta(hours=-1)),
    (RunMode.REW_2H, dt.timedelta(hours=-2)),
    (RunMode.REW_1D, dt.timedelta(days=-1)),
])
def test_tick_applies_mode_step(start, mode, step):
    clock = TimeController(start)
    clock.set_mode(mode)
    assert clock.is_running
    assert clock.tick() == start + step
    assert clock.tick() == start + 2 * step
    assert MODE_STEPS[mode] == step


def test_idle_tick_does_nothing(start):
    clock = TimeController(start)
    assert clock.mode is RunMode.IDLE
    assert not clock.is_running
    assert clock.tick() == start


def test_modes_accept_values_and_reject_unknown(start):
    clock = TimeController(start)
    clock.set_mode("fwd2h")
    assert clock.mode is RunMode.FWD_2H
    with raises(ValueError):
        clock.set_mode("fast")
    # last valid mode still applies
    assert clock.mode is RunMode.FWD_2H


def test_toggle_and_pause(start):
    clock = TimeController(start)
    clock.toggle()
    assert clock.mode is RunMode.PLAY_15M
    clock.toggle()
    assert clock.mode is RunMode.IDLE

    clock.set_mode(RunMode.REW_1D)
    clock.toggle()
    assert clock.mode is RunMode.IDLE
    clock.set_mode(RunMode.FWD_1D)
    clock.pause()
    assert not clock.is_running


def test_reset_keeps_running_mode(start):
    clock = TimeController(start)
    clock.set_mode(RunMode.FWD_1H)
    target = dt.datetime(2024, 1, 1, 6)
    clock.reset(target)
    assert clock.instant == target
    assert clock.mode is RunMode.FWD_1H

    before = dt.datetime.now()
    clock.reset()
    assert clock.instant >= before


def test_manual_steps(start):
    clock = TimeController(start)
    clock.step_hour()
    clock.step_two_hours()
    clock.step_day()
    assert clock.instant == start + dt.timedelta(days=1, hours=3)
    clock.step_day(-1)
    clock.step_two_hours(-1)
    clock.step_hour(-1)
    assert clock.instant == start

    with raises(ValueError):
        clock.step_hour(2)


def test_subscribers_see_every_change(start):
    clock = TimeController(start)
    seen = []
    unsubscribe = clock.subscribe(seen.append)

    clock.step_hour()
    clock.set_mode(RunMode.FWD_1D)
    clock.tick()
    clock.reset(start)
    assert seen == [start + dt.timedelta(hours=1), start + dt.timedelta(days=1, hours=1), start]

    unsubscribe()
    clock.tick()
    assert len(seen) == 3
    # unsubscribing twice is harmless
    unsubscribe()


def test_timer_advances_on_running_loop(start):
    async def drive():
        clock = TimeController(start, period_ms=10)
        clock.set_mode(RunMode.FWD_1H)
        await asyncio.sleep(0.15)
        clock.pause()
        paused_at = clock.instant
        await asyncio.sleep(0.05)
        clock.close()
        return paused_at, clock.instant

    paused_at, final = asyncio.run(drive())
    assert paused_at > start
    assert (paused_at - start) % dt.timedelta(hours=1) == dt.timedelta(0)
    assert final == paused_at


def test_close_stops_timer(start):
    async def drive():
        clock = TimeController(start, period_ms=10)
        clock.set_mode(RunMode.REW_1H)
        await asyncio.sleep(0.05)
        clock.close()
        closed_at = clock.instant
        await asyncio.sleep(0.05)
        return clock, closed_at

    clock, closed_at = asyncio.run(drive())
    assert clock.mode is RunMode.IDLE
    assert clock.instant == closed_at
    assert closed_at < start


def test_failing_listener_stops_timer(start):
    def broken(instant):
        if instant >= start + dt.timedelta(hours=2):
            raise AssertionError("soil moisture out of bounds")

    async def drive():
        clock = TimeController(start, period_ms=5)
        clock.subscribe(broken)
        clock.set_mode(RunMode.FWD_1H)
        await asyncio.sleep(0.1)
        return clock

    clock = asyncio.run(drive())
    assert clock.mode is RunMode.IDLE
    assert not clock.is_running
    assert clock.instant == start + dt.timedelta(hours=2)
    assert isinstance(clock.error, AssertionError)

    # a new mode clears the error
    clock.set_mode(RunMode.FWD_1H)
    assert clock.error is None
