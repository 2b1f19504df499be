from pytest import approx, fixture, raises
import datetime as dt

from sproutsim.sim.bed import Bed
from sproutsim.sim.coupler import BedCoupler
from sproutsim.sim.plant_data import DeathReason, GrowthPhase
from sproutsim.sim.simulation_data import StressOverrides
from sproutsim.sim.water import band_for_plant, effective_water_limits, water_efficiency

QUARTER = dt.timedelta(minutes=15)


@fixture
def bed(make_plant, start):
    bed = Bed("b1", capacity_mm=100, moisture_mm=30, percolation_mm_per_day=2)
    species = make_plant().species
    bed.place_plant("p1", species, 0.0, 0.0, start)
    return bed


@fixture
def coupler(bed):
    return BedCoupler(bed, lat=45.0, lon=0.0)


@fixture
def run(make_report):
    """ Drive a coupler in 15-minute ticks; precipitation balances percolation. """
    def _run(coupler, begin, end, step=QUARTER, **report_kwargs):
        report_kwargs.setdefault("precip_total", 2.0)
        instant = begin
        while instant <= end:
            coupler.update(instant, report=make_report(instant.date(), **report_kwargs))
            instant += step
        return instant - step
    return _run


def test_one_day_of_growth(coupler, run, start):
    run(coupler, start, start + dt.timedelta(days=1))
    plant = coupler.bed.plants["p1"]

    snap = coupler.snapshots.get("b1", "p1", start.date())
    assert snap is not None
    # mid-June at 45N: about 15.5 h of daylight, more than the 8 h required
    assert 14.0 < snap.sunlight_hours < 16.5
    assert snap.shaded_hours == 0.0
    assert snap.temp_ok_hours == 24

    band = band_for_plant(plant, coupler.bed.soil, 0.0, start + dt.timedelta(days=1))
    water_eff = water_efficiency(30.0, *effective_water_limits(plant.species, band))
    assert coupler.bed.soil.moisture_mm == approx(30.0)
    assert plant.height == approx(0.5 * water_eff)
    assert plant.canopy_radius == approx(0.25 * water_eff)
    assert snap.height == plant.height
    assert snap.inputs["water_eff"] == approx(water_eff)


def test_replaying_a_day_does_not_grow_twice(coupler, run, start):
    end = run(coupler, start, start + dt.timedelta(days=1))
    height = coupler.bed.plants["p1"].height

    # rewind into the grown day and play forward again
    run(coupler, start + dt.timedelta(hours=12), end)
    assert coupler.bed.plants["p1"].height == height
    assert coupler.bed.soil.moisture_mm == approx(30.0)
    assert len(coupler.snapshots) == 1


def test_apply_growth_now(coupler, run, start):
    run(coupler, start, start + dt.timedelta(hours=12))
    now = start + dt.timedelta(hours=12)

    assert coupler.apply_growth_now(now) == ["p1"]
    grown = coupler.bed.plants["p1"].height
    assert grown > 0
    assert coupler.apply_growth_now(now) == []

    # the normal end-of-day growth for the same day is then skipped
    run(coupler, now + QUARTER, start + dt.timedelta(days=1))
    assert coupler.bed.plants["p1"].height == grown


def test_shaded_plant_gets_less_sun(bed, run, start, make_plant):
    bed.add_tree("oak", 0.0, 0.0, height=50.0, canopy_radius=5.0)
    bed.remove_plant("p1")
    # on the axis of the tree's midday shadow
    bed.place_plant("p2", make_plant().species, -3.0, 0.0, start, canopy_radius=1.0)
    coupler = BedCoupler(bed, lat=45.0, lon=0.0)
    run(coupler, start, start + dt.timedelta(days=1))

    snap = coupler.snapshots.get("b1", "p2", start.date())
    assert snap.shaded_hours > 0
    assert 14.0 < snap.sunlight_hours + snap.shaded_hours < 16.5
    assert snap.sunlight_hours < 15.0


def test_kill_freezes_growth(coupler, run, start):
    deaths = []
    coupler.on_death = lambda plant_id, info: deaths.append((plant_id, info))
    run(coupler, start, start + dt.timedelta(hours=6))

    coupler.kill_plant("p1", DeathReason.TOO_HOT, start + dt.timedelta(hours=6))
    assert coupler.is_dead("p1")
    info = coupler.death_info("p1")
    assert info.reason is DeathReason.TOO_HOT
    assert info.details["debug_kill"]
    assert deaths == [("p1", info)]

    run(coupler, start + dt.timedelta(hours=6), start + dt.timedelta(days=2))
    plant = coupler.bed.plants["p1"]
    assert plant.height == 0.0
    assert plant.phase is GrowthPhase.DEAD
    assert len(coupler.snapshots) == 0
    assert len(deaths) == 1

    stats = coupler.live_stats["p1"]
    assert stats.is_dead
    assert stats.death_reason == "too_hot"
    assert stats.growth_status == "dead"


def test_cold_override_kills(coupler, run, start):
    coupler.overrides.enabled = True
    coupler.overrides.temp_c = -5.0
    run(coupler, start, start + dt.timedelta(hours=2))

    info = coupler.death_info("p1")
    assert info.reason is DeathReason.TOO_COLD
    assert info.died_at == start
    assert coupler.environment.overridden


def test_stale_report_ignored(coupler, make_report, start):
    coupler.update(start, report=make_report(start.date() + dt.timedelta(days=1), precip_total=40.0))
    assert coupler.report is None
    assert coupler.bed.soil.moisture_mm == 30.0


def test_live_stats_and_phase(coupler, run, start):
    run(coupler, start, start + dt.timedelta(hours=13))
    stats = coupler.live_stats["p1"]
    assert not stats.is_dead
    assert stats.sun_hours > 0
    assert stats.temp_ok_hours == 24
    assert stats.phase == "vegetative"
    assert stats.growth_status == "growing"
    assert coupler.temperature_efficiency(coupler.bed.plants["p1"]) == approx(1.0)


def test_growth_status_without_inputs(bed, make_plant, start):
    bed.place_plant("static", make_plant(max_height=None).species, 1.0, 1.0, start)
    bed.place_plant("shadeless", make_plant(sun_req=None).species, 2.0, 2.0, start)
    coupler = BedCoupler(bed, 45.0, 0.0)
    assert coupler.growth_status(bed.plants["static"]) == "static (no growth rate)"
    assert coupler.growth_status(bed.plants["shadeless"]) == "static (no sun requirement)"


def test_removed_plants_are_pruned(coupler, run, start):
    run(coupler, start, start + dt.timedelta(hours=1))
    assert "p1" in coupler.mortality
    coupler.bed.remove_plant("p1")
    coupler.update(start + dt.timedelta(hours=2))
    assert "p1" not in coupler.mortality
    assert "p1" not in coupler.live_stats

    with raises(KeyError):
        coupler.bed.remove_plant("p1")


def test_duplicate_ids_rejected(bed, make_plant, start):
    with raises(ValueError):
        bed.place_plant("p1", make_plant().species, 1.0, 1.0, start)
    with raises(ValueError):
        bed.add_structure("p1", 0.0, 0.0, 1.0, 1.0, 1.0)


def test_irrigate_bed(bed):
    assert bed.irrigate(30) == 60
    assert bed.irrigate(-10) == 60


def test_death_callback_may_remove_plants(bed, make_plant, start):
    bed.place_plant("p2", make_plant().species, 1.0, 1.0, start)
    removed = []

    def remove_dead(plant_id, info):
        removed.append(plant_id)
        bed.remove_plant(plant_id)

    coupler = BedCoupler(bed, 45.0, 0.0, overrides=StressOverrides(enabled=True, temp_c=-10.0),
                         on_death=remove_dead)
    coupler.update(start)

    # every plant was still stepped in the tick that removed the first one
    assert removed == ["p1", "p2"]
    assert bed.plants == {}
    assert coupler.death_info("p2").reason is DeathReason.TOO_COLD

    coupler.update(start + QUARTER)
    assert coupler.mortality == {}
