from pytest import fixture, raises
import math
import asyncio
import datetime as dt

from sproutsim.sim.base import GardenSimulation
from sproutsim.sim.bed import Bed
from sproutsim.sim.clock import TimeController, RunMode
from sproutsim.sim.plant_data import PlantRegistry, DeathReason
from sproutsim.sim.simulation_data import StressOverrides
from sproutsim.sim.weather import StaticWeatherProvider, WeatherProviderBase, WeatherFetchError
from sproutsim.sim.outputs import load_snapshots


class FlakyProvider(WeatherProviderBase):
    """ Fails on its first ``failures`` calls, then serves the scripted report. """

    def __init__(self, make_report, failures=1):
        self.make_report = make_report
        self.failures = failures
        self.calls = 0

    def get_weather(self, lat, lon, date):
        self.calls += 1
        if self.calls <= self.failures:
            raise WeatherFetchError("service unavailable")
        return self.make_report(date, precip_total=2.0)


class LoopCheckingProvider(WeatherProviderBase):
    """ Records whether each call ran on a thread with a running event loop. """

    def __init__(self, make_report):
        self.make_report = make_report
        self.on_loop = []

    def get_weather(self, lat, lon, date):
        try:
            asyncio.get_running_loop()
            self.on_loop.append(True)
        except RuntimeError:
            self.on_loop.append(False)
        return self.make_report(date, precip_total=2.0)


@fixture
def registry(sample_data_path):
    return PlantRegistry.from_directory(sample_data_path)


@fixture
def bed(registry, start):
    # moisture inside both species' comfort bands
    bed = Bed("north", capacity_mm=100, moisture_mm=25, percolation_mm_per_day=2)
    bed.place_plant("tomato-1", registry.get("tomato"), 0.0, 0.0, start)
    bed.place_plant("lettuce-1", registry.get("lettuce"), 40.0, 0.0, start)
    return bed


@fixture
def provider(make_report, start):
    return StaticWeatherProvider(default=make_report(start.date(), precip_total=2.0))


def test_run_simulation(bed, provider, start, tmp_path):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    snapshots = sim.run_simulation(start, days=3, output_dir=tmp_path)

    for plant_id in bed.plants:
        days = [s.day for s in snapshots.for_plant("north", plant_id)]
        assert days == [start.date() + dt.timedelta(days=i) for i in range(3)]
        assert not sim.couplers[0].is_dead(plant_id)

    heights = [s.height for s in snapshots.for_plant("north", "tomato-1")]
    assert heights == sorted(heights)
    assert heights[0] > 0

    ds = load_snapshots(tmp_path / "snapshots")
    assert ds.sizes["record"] == 6
    assert set(ds["plant_instance_id"].values) == {"tomato-1", "lettuce-1"}
    assert bed.soil.moisture_mm == 25


def test_run_simulation_rejects_bad_arguments(bed, provider, start):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    for mode in (RunMode.REW_1H, RunMode.IDLE):
        with raises(ValueError):
            sim.run_simulation(start, days=1, mode=mode)
    with raises(ValueError):
        sim.run_simulation(start, days=1, mode="warp")
    with raises(ValueError):
        sim.run_simulation(start, days=0)


def test_missing_weather_fails_open(bed, start):
    sim = GardenSimulation(45.0, 7.0, [bed], StaticWeatherProvider())
    snapshots = sim.run_simulation(start, days=1, mode=RunMode.FWD_1H)

    snap = snapshots.get("north", "tomato-1", start.date())
    assert snap is not None
    assert math.isnan(snap.temp_ok_hours)
    assert sim.feed.error is not None
    assert not sim.couplers[0].is_dead("tomato-1")


def test_overrides_reach_every_bed(bed, provider, start, registry):
    other = Bed("south", capacity_mm=100, moisture_mm=25)
    other.place_plant("tomato-2", registry.get("tomato"), 0.0, 0.0, start)

    deaths = []
    sim = GardenSimulation(45.0, 7.0, [bed, other], provider,
                           on_death=lambda plant_id, info: deaths.append((plant_id, info.reason)))
    sim.set_overrides(enabled=True, temp_c=-5.0)
    sim.run_simulation(start, days=1)

    assert sorted(deaths) == [("lettuce-1", DeathReason.TOO_COLD),
                              ("tomato-1", DeathReason.TOO_COLD),
                              ("tomato-2", DeathReason.TOO_COLD)]
    stats = sim.live_stats()
    assert stats["south"]["tomato-2"].is_dead


def test_attached_clock_drives_beds(bed, provider, start):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    clock = TimeController(start)
    sim.attach_clock(clock)
    assert set(sim.live_stats()["north"]) == {"tomato-1", "lettuce-1"}

    for _ in range(24):
        clock.step_hour()
    assert len(sim.snapshots) == 2

    sim.close()
    clock.step_day()
    assert len(sim.snapshots) == 2


def test_apply_growth_now(bed, provider, start):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    noon = start + dt.timedelta(hours=12)
    sim.step(start)
    sim.step(noon)
    grown = sim.apply_growth_now(noon)
    assert sorted(grown["north"]) == ["lettuce-1", "tomato-1"]


def test_async_step(bed, provider, start):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    asyncio.run(sim.step_async(start))
    assert sim.feed.report.day.date == start.date()
    assert sim.couplers[0].report is sim.feed.report


def test_failed_fetch_is_retried(bed, make_report, start):
    provider = FlakyProvider(make_report)
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    for hour in range(23):
        sim.step(start + dt.timedelta(hours=hour))

    assert provider.calls == 2
    assert sim.feed.error is None
    assert bed.water.last_applied_day == start.date().isoformat()
    assert sim.couplers[0].report is sim.feed.report


def test_failed_async_fetch_is_retried(bed, make_report, start):
    provider = FlakyProvider(make_report)
    sim = GardenSimulation(45.0, 7.0, [bed], provider)

    async def drive():
        for hour in range(3):
            await sim.step_async(start + dt.timedelta(hours=hour))

    asyncio.run(drive())
    assert provider.calls == 2
    assert bed.water.last_applied_day == start.date().isoformat()


def test_clock_timer_fetches_weather_off_the_loop(bed, make_report, start):
    provider = LoopCheckingProvider(make_report)
    sim = GardenSimulation(45.0, 7.0, [bed], provider)

    async def drive():
        clock = TimeController(start, period_ms=20)
        sim.attach_clock(clock)
        clock.set_mode(RunMode.FWD_1D)
        await asyncio.sleep(0.3)
        sim.close()
        return clock

    clock = asyncio.run(drive())
    assert len(provider.on_loop) >= 2
    assert not any(provider.on_loop)
    assert clock.instant > start
    assert sim.feed.report is not None


def test_failure_while_following_clock_pauses_it(bed, provider, start):
    def broken_display(plant_id, info):
        raise RuntimeError("display went away")

    sim = GardenSimulation(45.0, 7.0, [bed], provider, on_death=broken_display,
                           overrides=StressOverrides(enabled=True, temp_c=-10.0))

    async def drive():
        clock = TimeController(start, period_ms=5)
        sim.attach_clock(clock)
        clock.set_mode(RunMode.FWD_1H)
        await asyncio.sleep(0.1)
        mode = clock.mode
        sim.close()
        return mode

    assert asyncio.run(drive()) is RunMode.IDLE
    assert isinstance(sim.error, RuntimeError)


def test_set_overrides_changes_only_given_values(bed, provider):
    sim = GardenSimulation(45.0, 7.0, [bed], provider)
    sim.set_overrides(enabled=True, temp_c=-5.0, soil_moisture=10.0)
    sim.set_overrides(enabled=False)
    assert not sim.overrides.enabled
    assert sim.overrides.temp_c == -5.0
    assert sim.overrides.soil_moisture == 10.0

    sim.set_overrides(temp_c=None)
    assert sim.overrides.temp_c is None
    assert sim.overrides.soil_moisture == 10.0
    assert sim.couplers[0].overrides is sim.overrides
