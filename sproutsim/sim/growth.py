###############################################################
#  growth.py
###############################################################

import re
import math
import datetime as dt
from typing import Optional, NamedTuple

from sproutsim.sim.simulation_data import day_key
from sproutsim.utils.array_math import clamp01, is_number, safe_ratio
from sproutsim.utils.log import Reporter

r = Reporter()


##### ---------- Species-derived rates ---------- #####

def parse_maturity_days(spec) -> Optional[int]:
    """
    Smallest positive integer found in a free-text maturity spec.

    ``"60-70"`` and ``"60–70 days"`` both give 60, a plain number is used as-is.
    Returns None when nothing usable is found.
    """
    if spec is None or isinstance(spec, bool):
        return None
    if isinstance(spec, (int, float)):
        return int(spec) if spec > 0 else None
    numbers = [int(n) for n in re.findall(r"\d+", str(spec))]
    numbers = [n for n in numbers if n > 0]
    return min(numbers) if numbers else None


def compute_base_growth_rate(max_height, maturity_spec) -> Optional[float]:
    """ ``max_height / parsed maturity days``, or None when either is unusable. """
    if not is_number(max_height) or max_height <= 0:
        return None
    days = parse_maturity_days(maturity_spec)
    if days is None:
        return None
    return max_height / days


##### ---------- Daily adequacy terms ---------- #####

def temp_ok_hours(series, t_min=None, t_max=None) -> Optional[float]:
    """
    Number of hourly samples strictly inside ``(t_min, t_max)``.

    A missing bound is not checked; with neither bound the whole day counts (24).
    Returns None without a series.
    """
    if t_min is None and t_max is None:
        return 24.0
    if series is None:
        return None
    ok = 0
    for t in series:
        if not is_number(t):
            continue
        if t_min is not None and t <= t_min:
            continue
        if t_max is not None and t >= t_max:
            continue
        ok += 1
    return float(ok)


def temperature_efficiency(t_mean, t_min=None, t_max=None) -> float:
    """
    Triangular efficiency of the daily mean temperature: 0 at or beyond either
    threshold, 1 at their midpoint. Missing or inverted thresholds give 1.
    """
    if t_mean is None or t_min is None or t_max is None or t_min >= t_max:
        return 1.0
    if t_mean <= t_min or t_mean >= t_max:
        return 0.0
    mid = (t_min + t_max) / 2
    if t_mean <= mid:
        eff = (t_mean - t_min) / max(1e-6, mid - t_min)
    else:
        eff = (t_max - t_mean) / max(1e-6, t_max - mid)
    return clamp01(eff)


def sun_efficiency(sun_hours, sun_req) -> float:
    # no requirement defined -> no sun-driven growth
    return clamp01(safe_ratio(sun_hours, sun_req, default=0.0))


##### ---------- Sunlight accounting ---------- #####

class DayTotals(NamedTuple):
    day_key: int
    sun_hours: float
    shaded_hours: float


class SunlightTally:
    """
    Per-plant sunlit and shaded hours for the current simulated day.

    Each call to :meth:`record` credits the simulated time elapsed since the
    previous call, as sunlit when the sun is up and the plant unshaded, as shaded
    when the sun is up and the plant shaded. Night time counts as neither.
    Non-positive deltas (first tick, rewind) credit nothing, and a tick that
    crosses into another day only closes the old day.
    """

    def __init__(self):
        self.day_key: Optional[int] = None
        self.sun_hours = 0.0
        self.shaded_hours = 0.0
        self.last_instant: Optional[dt.datetime] = None
        self.previous: Optional[DayTotals] = None

    def record(self, instant: dt.datetime, sun_up: bool, shaded: bool) -> Optional[DayTotals]:
        """ Credit elapsed time; return the closed day's totals when the day key changes. """
        key = day_key(instant)
        closed = None

        if self.day_key is None:
            self.day_key = key
        elif key != self.day_key:
            closed = DayTotals(self.day_key, self.sun_hours, self.shaded_hours)
            self.previous = closed
            self.day_key = key
            self.sun_hours = 0.0
            self.shaded_hours = 0.0
        elif self.last_instant is not None and sun_up:
            delta_hours = (instant - self.last_instant).total_seconds() / 3600.
            if delta_hours > 0:
                if shaded:
                    self.shaded_hours += delta_hours
                else:
                    self.sun_hours += delta_hours

        self.last_instant = instant
        return closed


##### ---------- Daily increment ---------- #####

def _cap(value):
    return value if is_number(value) and value > 0 else math.inf


def grow_plant(plant, key: int, sun_hours, temp_ok, water_eff) -> bool:
    """
    Apply one day's growth increment to ``plant`` for day ``key``.

    ``increment = base_growth_rate * sun_eff * water_eff * temp_eff``, applied to
    height and, scaled by ``max_canopy_radius / max_height``, to canopy radius.
    Both are capped at the species maxima. Idempotent per plant per day key:
    returns False (and changes nothing) if ``key`` is not after the last day
    that was applied, so rewinding and replaying never grows a day twice.
    """
    if plant.last_grown_day_key is not None and key <= plant.last_grown_day_key:
        return False
    plant.last_grown_day_key = key

    attrs = plant.species
    rate = attrs.base_growth_rate
    if not is_number(rate) or rate <= 0:
        return True

    sun_eff = sun_efficiency(sun_hours, attrs.sun_req)
    temp_eff = 1.0 if temp_ok is None else clamp01(temp_ok / 24.)
    factor = sun_eff * clamp01(water_eff) * temp_eff

    max_height = _cap(attrs.max_height)
    max_canopy = _cap(attrs.max_canopy_radius)
    if math.isfinite(max_height) and math.isfinite(max_canopy):
        canopy_rate = rate * (max_canopy / max_height)
    else:
        canopy_rate = rate

    new_height = min(max_height, plant.height + rate * factor)
    new_canopy = min(max_canopy, plant.canopy_radius + canopy_rate * factor)

    # never shrink, even if the species caps were lowered below the current size
    plant.height = max(plant.height, new_height)
    plant.canopy_radius = max(plant.canopy_radius, new_canopy)
    if math.isfinite(max_height):
        plant.leaf_growth = clamp01(plant.height / max_height)

    r.report(f"Growth for plant \"{plant.instance_id}\" on day {dt.date.fromordinal(key)}: "
             f"sun {sun_hours:.2f}h (eff {sun_eff:.2f}), water eff {water_eff:.2f}, temp eff {temp_eff:.2f} "
             f"-> height {plant.height:.3f}, canopy {plant.canopy_radius:.3f}", level="DEBUG")
    return True
