###############################################################
#  base.py
###############################################################

import time
import asyncio
import datetime as dt
from typing import Optional

from sproutsim.sim.clock import TimeController, RunMode, MODE_STEPS
from sproutsim.sim.coupler import BedCoupler
from sproutsim.sim.outputs import SnapshotStore, OutputManager
from sproutsim.sim.simulation_data import StressOverrides, day_key
from sproutsim.sim.sun import compute_sun_direction
from sproutsim.sim.weather import WeatherFeed, WeatherProviderBase
from sproutsim.utils.log import Reporter
from sproutsim.utils.simulation_reporting import (
    print_run_info, print_runtime_updates, print_death_summary,
)

r = Reporter()

# marks an override value that was not passed
_UNSET = object()


class GardenSimulation:
    """
    Runs the garden beds of one location against a weather provider.

    This class is a high-level wrapper that owns the simulated clock, the
    cancelable weather feed and one :class:`~sproutsim.sim.coupler.BedCoupler`
    per bed. It can either run headless over a fixed period
    (:meth:`run_simulation`) or follow an interactive
    :class:`~sproutsim.sim.clock.TimeController` (:meth:`attach_clock`).
    Daily growth snapshots of all beds go to one shared
    :class:`~sproutsim.sim.outputs.SnapshotStore`.
    """

    def __init__(self,
                 lat: float,
                 lon: float,
                 beds,
                 provider: WeatherProviderBase,
                 overrides: Optional[StressOverrides] = None,
                 on_death=None,
                 ):
        self.lat = lat
        self.lon = lon
        self.feed = WeatherFeed(provider, lat, lon)
        self.overrides = overrides if overrides is not None else StressOverrides()
        self.snapshots = SnapshotStore()
        self.couplers = [BedCoupler(bed, lat, lon, overrides=self.overrides,
                                    on_death=on_death, snapshots=self.snapshots)
                         for bed in beds]
        self.clock: Optional[TimeController] = None
        self._unsubscribe = None
        self._fetched_day = None
        self._pending: list = []
        self._driver: Optional[asyncio.Task] = None
        self.error: Optional[BaseException] = None

    def run_simulation(self,
                       start: dt.datetime,
                       days,
                       mode=RunMode.PLAY_15M,
                       water_use_factor=None,
                       treat_daily_mean_as_hourly=False,
                       output_dir=None,
                       report_interval_days=1,
                       ):
        """
        Run all beds from ``start`` for ``days`` simulated days.

        Parameters
        ----------
        start : datetime
            First simulated instant.
        days : int
            Simulation duration in days.
        mode : RunMode or str, optional
            Forward playback mode giving the tick size. Default is ``"play15m"``.
        water_use_factor : float, optional
            Multiplier on ET0 for every bed's daily demand; bed settings are kept if None.
        treat_daily_mean_as_hourly : bool, optional
            Use the daily mean for cold/heat checks when no hourly series exists.
        output_dir : str or Path, optional
            If given, daily snapshots are written there as NetCDF at the end of the run.
        report_interval_days : int, optional
            Interval in simulated days between progress messages.
        """
        mode = RunMode(mode)
        step = MODE_STEPS[mode]
        if step <= dt.timedelta(0):
            msg = f"run_simulation needs a forward mode, got \"{mode.value}\""
            r.report(msg, level="ERROR")
            raise ValueError(msg)
        if days <= 0:
            msg = f"Simulation duration must be positive, got {days} days"
            r.report(msg, level="ERROR")
            raise ValueError(msg)

        for coupler in self.couplers:
            coupler.treat_daily_mean_as_hourly = treat_daily_mean_as_hourly
            if water_use_factor is not None:
                coupler.bed.water.water_use_factor = water_use_factor

        self.clock = TimeController(start)
        self.clock.set_mode(mode)
        print_run_info(start, days, mode, len(self.couplers))

        end = start + dt.timedelta(days=days)
        time_0 = time.time()
        i_day = 0
        current_day = None
        # the tick landing on `end` closes the last simulated day
        while self.clock.instant <= end:
            instant = self.clock.instant
            key = day_key(instant)
            if key != current_day:
                if current_day is not None:
                    i_day += 1
                    if i_day % report_interval_days == 0:
                        print_runtime_updates(instant, i_day, days, time_0)
                current_day = key
            self.step(instant)
            self.clock.tick()

        self.clock.close()
        print_death_summary(self.couplers)
        if output_dir is not None:
            OutputManager(output_dir).save_snapshots(self.snapshots)
        r.report("Simulation complete!")
        return self.snapshots

    def step(self, instant: dt.datetime):
        """
        Bring every bed to ``instant``. Weather is fetched on the first step of
        each simulated day and again on later steps until a report for that day
        has arrived, so a failed fetch is retried.
        """
        if self._weather_due(instant):
            self.feed.fetch(instant.date())
            self._mark_fetched(instant)
        self._update_beds(instant)

    async def step_async(self, instant: dt.datetime):
        """ As :meth:`step`, but the weather request is cancelable and superseded by newer ones. """
        if self._weather_due(instant):
            await self.feed.request(instant.date())
            self._mark_fetched(instant)
        self._update_beds(instant)

    def attach_clock(self, clock: TimeController):
        """
        Follow an interactive clock: every instant change steps all beds.

        Inside a running event loop the instants are queued and stepped by one
        driver task that awaits the cancelable weather feed, so the provider
        never runs on the loop thread. A request for a day the clock has already
        left is cancelled and the instants of that day are stepped without
        weather. Without a running loop every instant is stepped synchronously.
        """
        self.detach_clock()
        self.clock = clock
        self._unsubscribe = clock.subscribe(self._follow)
        self._follow(clock.instant)

    def detach_clock(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._pending.clear()
        if self._driver is not None and not self._driver.done():
            self._driver.cancel()
        self._driver = None

    def _weather_due(self, instant) -> bool:
        return day_key(instant) != self._fetched_day

    def _mark_fetched(self, instant):
        report = self.feed.report
        if report is not None and report.day.key == day_key(instant):
            self._fetched_day = report.day.key

    def _update_beds(self, instant):
        sun = compute_sun_direction(self.lat, self.lon, instant)
        for coupler in self.couplers:
            coupler.update(instant, sun, self.feed.report)

    def _follow(self, instant: dt.datetime):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.step(instant)
            return

        # last request wins
        if self.feed.loading and self.feed.requested_date != instant.date():
            self.feed.cancel()
        self._pending.append(instant)
        if self._driver is None or self._driver.done():
            self._driver = loop.create_task(self._drain())
            self._driver.add_done_callback(self._driver_done)

    async def _drain(self):
        driver = asyncio.current_task()
        while self._pending and self._driver is driver:
            instant = self._pending.pop(0)
            superseded = bool(self._pending) and day_key(self._pending[-1]) != day_key(instant)
            if not superseded and self._weather_due(instant):
                await self.feed.request(instant.date())
                if self._driver is not driver:
                    return
                self._mark_fetched(instant)
            self._update_beds(instant)

    def _driver_done(self, task: asyncio.Task):
        if task.cancelled() or task.exception() is None:
            return
        self.error = task.exception()
        r.report(f"Stopped following the clock: {type(self.error).__name__}: {self.error}",
                 level="ERROR")
        if self._driver is task:
            self._driver = None
            self._pending.clear()
        if self.clock is not None:
            self.clock.pause()

    def apply_growth_now(self, instant: dt.datetime):
        return {c.bed.bed_id: c.apply_growth_now(instant) for c in self.couplers}

    def set_overrides(self, enabled=None, temp_c=_UNSET, soil_moisture=_UNSET):
        """
        Update the admin override channel shared by all beds. Only the values
        passed are changed; pass ``None`` to clear ``temp_c`` or ``soil_moisture``.
        """
        if enabled is not None:
            self.overrides.enabled = enabled
        if temp_c is not _UNSET:
            self.overrides.temp_c = temp_c
        if soil_moisture is not _UNSET:
            self.overrides.soil_moisture = soil_moisture

    def live_stats(self) -> dict:
        return {c.bed.bed_id: dict(c.live_stats) for c in self.couplers}

    def close(self):
        """ Teardown: stop the clock timer and abort any in-flight weather fetch. """
        self.detach_clock()
        if self.clock is not None:
            self.clock.close()
        self.feed.cancel()
