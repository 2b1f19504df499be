###############################################################
#  clock.py
###############################################################

import asyncio
import datetime as dt
from enum import Enum
from typing import Optional

from sproutsim.constants import CLOCK_PERIOD_MS
from sproutsim.utils.log import Reporter

r = Reporter()


class RunMode(str, Enum):
    IDLE = "idle"
    PLAY_15M = "play15m"
    FWD_1H = "fwd1h"
    FWD_2H = "fwd2h"
    FWD_1D = "fwd1d"
    REW_1H = "rew1h"
    REW_2H = "rew2h"
    REW_1D = "rew1d"


# signed simulated step per timer firing
MODE_STEPS = {
    RunMode.IDLE: dt.timedelta(0),
    RunMode.PLAY_15M: dt.timedelta(minutes=15),
    RunMode.FWD_1H: dt.timedelta(hours=1),
    RunMode.FWD_2H: dt.timedelta(hours=2),
    RunMode.FWD_1D: dt.timedelta(days=1),
    RunMode.REW_1H: dt.timedelta(hours=-1),
    RunMode.REW_2H: dt.timedelta(hours=-2),
    RunMode.REW_1D: dt.timedelta(days=-1),
}


class TimeController:
    """
    Simulated clock with selectable playback modes.

    Selecting a non-idle mode starts a repeating timer (an asyncio task on the
    running event loop) that adds the mode's signed step to the simulated
    instant every ``period_ms`` of wall-clock time. Without a running loop the
    clock only moves through :meth:`tick`, the manual steps and :meth:`reset`.
    Mode changes are last-write-wins. Every change of the instant is pushed to
    the subscribed listeners. A listener failing inside the timer stops the
    clock: the error is reported, kept in :attr:`error` and the mode returns to
    idle.

    Parameters
    ----------
    initial_date : datetime, optional
        Starting simulated instant. Defaults to the current wall-clock time.
    period_ms : int, optional
        Wall-clock period between timer firings. Default is 200 ms.
    """

    def __init__(self, initial_date: Optional[dt.datetime] = None, period_ms=CLOCK_PERIOD_MS):
        self.instant = initial_date if initial_date is not None else dt.datetime.now()
        self.period_ms = period_ms
        self._mode = RunMode.IDLE
        self._task: Optional[asyncio.Task] = None
        self._listeners = []
        self.error: Optional[BaseException] = None

    @property
    def mode(self) -> RunMode:
        return self._mode

    @property
    def is_running(self) -> bool:
        return self._mode is not RunMode.IDLE

    def subscribe(self, callback):
        """ Register ``callback(instant)``; returns a function that unregisters it. """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def set_mode(self, mode):
        try:
            mode = RunMode(mode)
        except ValueError:
            msg = f"Unknown run mode \"{mode}\"; expected one of {[m.value for m in RunMode]}"
            r.report(msg, level="ERROR")
            raise ValueError(msg) from None

        self._stop_timer()
        self._mode = mode
        self.error = None
        if mode is not RunMode.IDLE:
            self._start_timer()

    def pause(self):
        self.set_mode(RunMode.IDLE)

    def toggle(self):
        self.set_mode(RunMode.PLAY_15M if self._mode is RunMode.IDLE else RunMode.IDLE)

    def tick(self) -> dt.datetime:
        """ Apply one step of the current mode (what a timer firing does). """
        step = MODE_STEPS[self._mode]
        if step:
            self._advance(step)
        return self.instant

    def reset(self, date: Optional[dt.datetime] = None):
        """ Jump to ``date`` (default: now). A running mode keeps running. """
        self._set_instant(date if date is not None else dt.datetime.now())

    def step_hour(self, direction=1):
        self._advance(self._direction(direction) * dt.timedelta(hours=1))

    def step_two_hours(self, direction=1):
        self._advance(self._direction(direction) * dt.timedelta(hours=2))

    def step_day(self, direction=1):
        self._advance(self._direction(direction) * dt.timedelta(days=1))

    def close(self):
        """ Stop the timer and return to idle (teardown). """
        self._stop_timer()
        self._mode = RunMode.IDLE

    @staticmethod
    def _direction(direction):
        if direction not in (1, -1):
            msg = f"Step direction must be 1 or -1, got {direction}"
            r.report(msg, level="ERROR")
            raise ValueError(msg)
        return direction

    def _advance(self, delta: dt.timedelta):
        self._set_instant(self.instant + delta)

    def _set_instant(self, instant):
        self.instant = instant
        for callback in list(self._listeners):
            callback(instant)

    def _start_timer(self):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            r.report(f"No running event loop; mode \"{self._mode.value}\" advances only through tick()",
                     level="DEBUG")
            return
        self._task = loop.create_task(self._run())
        self._task.add_done_callback(self._timer_done)

    def _stop_timer(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.period_ms / 1000.)
            self.tick()

    def _timer_done(self, task: asyncio.Task):
        if task.cancelled() or task.exception() is None:
            return
        self.error = task.exception()
        r.report(f"Clock stopped at {self.instant} in mode \"{self._mode.value}\": "
                 f"{type(self.error).__name__}: {self.error}", level="ERROR")
        if self._task is task:
            self._task = None
            self._mode = RunMode.IDLE
