from pytest import fixture, mark
import datetime as dt

from sproutsim.sim.lifestage import compute_phase, exceeds_lifespan, age_in_days
from sproutsim.sim.plant_data import PlantAttributes, GrowthPhase


@fixture
def timing():
    return PlantAttributes(species_id="t", max_height=10, days_to_maturity=50,
                           germination_days=5, flowering_days=30,
                           fruiting_days=50, lifespan_days=90)


@mark.parametrize("age, phase, into", [
    (2, GrowthPhase.SEED, 2),
    (10, GrowthPhase.VEGETATIVE, 5),
    (35, GrowthPhase.FLOWERING, 5),
    (60, GrowthPhase.FRUITING, 10),
    (90, GrowthPhase.FRUITING, 40),
    (91, GrowthPhase.DEAD, 1),
])
def test_phase_windows(timing, start, age, phase, into):
    info = compute_phase(start, start + dt.timedelta(days=age), timing)
    assert info.age_days == age
    assert info.phase is phase
    assert info.days_into_phase == into


def test_dead_phase_matches_strict_lifespan(timing, start):
    # partway through day 90 the exact age already exceeds the lifespan
    instant = start + dt.timedelta(days=90, hours=1)
    assert exceeds_lifespan(start, instant, timing.lifespan_days)
    assert compute_phase(start, instant, timing).phase is GrowthPhase.DEAD
    assert not exceeds_lifespan(start, start + dt.timedelta(days=90), 90)


def test_undefined_windows_default_to_vegetative(start):
    timing = PlantAttributes(species_id="plain", max_height=10, days_to_maturity=20)
    info = compute_phase(start, start + dt.timedelta(days=400), timing)
    assert info.phase is GrowthPhase.VEGETATIVE
    assert info.days_into_phase == 400


def test_flowering_without_fruiting_lasts_until_death(start):
    timing = PlantAttributes(species_id="flower", max_height=10, days_to_maturity=20,
                             flowering_days=10, lifespan_days=30)
    assert compute_phase(start, start + dt.timedelta(days=25), timing).phase is GrowthPhase.FLOWERING
    assert compute_phase(start, start + dt.timedelta(days=31), timing).phase is GrowthPhase.DEAD


def test_age_floored_at_zero(timing, start):
    before = start - dt.timedelta(days=3)
    assert age_in_days(start, before) == 0.0
    assert compute_phase(start, before, timing).phase is GrowthPhase.SEED
