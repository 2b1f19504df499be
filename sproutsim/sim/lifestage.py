import math
import datetime as dt
from typing import Optional, NamedTuple

from sproutsim.sim.plant_data import GrowthPhase
from sproutsim.constants import SECONDS_PER_DAY


class PhaseInfo(NamedTuple):
    age_days: int
    phase: GrowthPhase
    days_into_phase: int


def age_in_days(planted_at: dt.datetime, instant: dt.datetime) -> float:
    """ Exact (fractional) age, floored at 0. """
    return max(0.0, (instant - planted_at).total_seconds() / SECONDS_PER_DAY)


def exceeds_lifespan(planted_at, instant, lifespan_days: Optional[float]) -> bool:
    """
    The single lifespan comparison shared by the life-stage label and the
    old-age mortality check: exact age strictly greater than ``lifespan_days``.
    """
    if lifespan_days is None:
        return False
    return age_in_days(planted_at, instant) > lifespan_days


def compute_phase(planted_at: dt.datetime, instant: dt.datetime, timing) -> PhaseInfo:
    """
    Derive the advisory life-stage label from age and species timing.

    ``timing`` is anything carrying ``germination_days``, ``flowering_days``,
    ``fruiting_days`` and ``lifespan_days`` (e.g. :class:`PlantAttributes`);
    undefined windows are skipped. Windows are checked in order: seed, dead,
    flowering, fruiting, and vegetative otherwise.
    """
    germination = getattr(timing, "germination_days", None) or 0
    flowering = getattr(timing, "flowering_days", None)
    fruiting = getattr(timing, "fruiting_days", None)
    lifespan = getattr(timing, "lifespan_days", None)

    age = int(math.floor(age_in_days(planted_at, instant)))

    if age < germination:
        phase, start = GrowthPhase.SEED, 0
    elif exceeds_lifespan(planted_at, instant, lifespan):
        phase, start = GrowthPhase.DEAD, lifespan
    elif flowering is not None and age >= flowering and (fruiting is None or age < fruiting):
        phase, start = GrowthPhase.FLOWERING, flowering
    elif fruiting is not None and age >= fruiting:
        phase, start = GrowthPhase.FRUITING, fruiting
    else:
        phase, start = GrowthPhase.VEGETATIVE, germination

    return PhaseInfo(age, phase, max(0, int(age - start)))
