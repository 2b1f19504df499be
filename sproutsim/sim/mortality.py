###############################################################
#  mortality.py
###############################################################

import datetime as dt
from typing import Optional
from dataclasses import dataclass, field, replace

from sproutsim.constants import WET_CAPACITY_FRACTION, DEFAULT_SUN_GRACE_DAYS
from sproutsim.sim.plant_data import DeathReason, DeathInfo, GraceHours
from sproutsim.sim.simulation_data import day_key, hour_key
from sproutsim.sim.lifestage import age_in_days, exceeds_lifespan
from sproutsim.utils.array_math import is_number
from sproutsim.utils.log import Reporter

r = Reporter()


@dataclass(frozen=True)
class MortalityState:
    """
    Survival state of one plant plus its stress counters.

    Attributes
    ----------
    dead : bool
        Terminal flag; once True it never reverts.
    reason : DeathReason or None
    died_at : datetime or None
        Simulated instant of death.
    details : dict
        Diagnostic values recorded at death (threshold, counter, ...).
    cold_hours, heat_hours, dry_hours, wet_hours : int
        Consecutive violating hours per stressor; reset to 0 as soon as the
        condition is not violated.
    bad_sun_days : int
        Consecutive days with less sun than required.
    last_day_key, last_hour_key : int or None
        Day/hour last evaluated, so the daily and hourly checks run once per
        distinct day/hour whatever the tick rate.
    """

    dead: bool = False
    reason: Optional[DeathReason] = None
    died_at: Optional[dt.datetime] = None
    details: dict = field(default_factory=dict)

    cold_hours: int = 0
    heat_hours: int = 0
    dry_hours: int = 0
    wet_hours: int = 0
    bad_sun_days: int = 0
    last_day_key: Optional[int] = None
    last_hour_key: Optional[int] = None

    @property
    def info(self) -> Optional[DeathInfo]:
        if not self.dead:
            return None
        return DeathInfo(self.reason, self.died_at, dict(self.details))


@dataclass(frozen=True)
class MortalityThresholds:
    """
    Per-plant limits. A None limit disables the corresponding check.
    ``water_min``/``water_max`` are the effective limits (explicit species
    overrides, else the dynamic comfort band).
    """

    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    water_min: Optional[float] = None
    water_max: Optional[float] = None
    soil_capacity_mm: Optional[float] = None
    sun_req: Optional[float] = None
    grace: GraceHours = field(default_factory=GraceHours)
    sun_grace_days: int = DEFAULT_SUN_GRACE_DAYS
    planted_at: Optional[dt.datetime] = None
    lifespan_days: Optional[float] = None

    @classmethod
    def for_plant(cls, plant, water_limits=(None, None), soil_capacity_mm=None):
        attrs = plant.species
        return cls(
            temp_min=attrs.temp_min,
            temp_max=attrs.temp_max,
            water_min=water_limits[0],
            water_max=water_limits[1],
            soil_capacity_mm=soil_capacity_mm,
            sun_req=attrs.sun_req,
            grace=attrs.grace_hours,
            sun_grace_days=attrs.sun_grace_days,
            planted_at=plant.planted_at,
            lifespan_days=attrs.lifespan_days,
        )


@dataclass(frozen=True)
class MortalityInputs:
    """
    Environment seen by the mortality check for one tick.

    ``previous_day_sun_hours`` is the finalised sunlit total of the day that
    just ended; it is only read on the tick that crosses into a new day.
    """

    instant: dt.datetime
    hourly_temps_c: Optional[tuple] = None
    daily_mean_c: Optional[float] = None
    soil_moisture_mm: Optional[float] = None
    previous_day_sun_hours: Optional[float] = None
    treat_daily_mean_as_hourly: bool = False

    def temp_now(self) -> Optional[float]:
        if self.hourly_temps_c is not None and len(self.hourly_temps_c) >= 24:
            t = self.hourly_temps_c[self.instant.hour]
            return t if is_number(t) else None
        if self.treat_daily_mean_as_hourly and is_number(self.daily_mean_c):
            return self.daily_mean_c
        return None


def _die(state, reason, instant, details) -> MortalityState:
    return replace(state, dead=True, reason=reason, died_at=instant, details=details)


def kill_now(state: MortalityState, reason: DeathReason, instant: dt.datetime, details=None) -> MortalityState:
    """ Manual kill bypassing grace periods; a no-op on a dead plant. """
    if state.dead:
        return state
    return _die(state, DeathReason(reason), instant, {**(details or {}), "debug_kill": True})


def assert_monotonic(previous: MortalityState, current: MortalityState):
    if previous.dead and not current.dead:
        msg = "Mortality state transitioned from dead back to alive"
        r.report(msg, level="ERROR")
        raise AssertionError(msg)


def step_mortality(state: MortalityState, inputs: MortalityInputs,
                   thresholds: MortalityThresholds) -> MortalityState:
    """
    Pure transition ``(state, inputs) -> state'`` for one tick.

    Runs, in order: the lifespan check (every tick), the hourly temperature and
    soil-moisture checks (once per distinct simulated hour), and the sunlight
    check (once per distinct simulated day, judging the day that just ended;
    a rewind to an earlier day judges nothing).
    The first check to exceed its grace period kills the plant. Dead plants are
    returned unchanged.
    """
    if state.dead:
        return state

    instant = inputs.instant
    t = thresholds

    # lifespan
    if t.planted_at is not None and is_number(t.lifespan_days) and t.lifespan_days > 0:
        if exceeds_lifespan(t.planted_at, instant, t.lifespan_days):
            return _die(state, DeathReason.OLD_AGE, instant, {
                "age_days": age_in_days(t.planted_at, instant),
                "lifespan_days": t.lifespan_days,
            })

    counters = {}
    hkey = hour_key(instant)
    if hkey != state.last_hour_key:
        counters["last_hour_key"] = hkey
        cold, heat = state.cold_hours, state.heat_hours
        dry, wet = state.dry_hours, state.wet_hours

        temp_now = inputs.temp_now()
        if temp_now is not None:
            if t.temp_min is not None:
                cold = cold + 1 if temp_now <= t.temp_min else 0
                if cold > t.grace.cold:
                    return _die(replace(state, cold_hours=cold), DeathReason.TOO_COLD, instant,
                                {"temp_c": temp_now, "threshold": t.temp_min, "hours": cold})
            if t.temp_max is not None:
                heat = heat + 1 if temp_now >= t.temp_max else 0
                if heat > t.grace.heat:
                    return _die(replace(state, cold_hours=cold, heat_hours=heat), DeathReason.TOO_HOT,
                                instant, {"temp_c": temp_now, "threshold": t.temp_max, "hours": heat})

        moisture = inputs.soil_moisture_mm
        if is_number(moisture):
            if t.water_min is not None:
                dry = dry + 1 if moisture < t.water_min else 0
                if dry > t.grace.dry:
                    return _die(replace(state, cold_hours=cold, heat_hours=heat, dry_hours=dry),
                                DeathReason.TOO_DRY, instant,
                                {"soil_moisture_mm": moisture, "min_mm": t.water_min, "hours": dry})

            if is_number(t.water_max) and t.water_max > 0:
                wet_threshold = t.water_max
            elif is_number(t.soil_capacity_mm):
                wet_threshold = t.soil_capacity_mm * WET_CAPACITY_FRACTION
            else:
                wet_threshold = None
            if wet_threshold is not None:
                wet = wet + 1 if moisture > wet_threshold else 0
                if wet > t.grace.wet:
                    return _die(replace(state, cold_hours=cold, heat_hours=heat, dry_hours=dry, wet_hours=wet),
                                DeathReason.TOO_WET, instant,
                                {"soil_moisture_mm": moisture, "max_mm": wet_threshold, "hours": wet})

        counters.update(cold_hours=cold, heat_hours=heat, dry_hours=dry, wet_hours=wet)

    dkey = day_key(instant)
    if dkey != state.last_day_key:
        counters["last_day_key"] = dkey
        if state.last_day_key is not None and dkey > state.last_day_key and is_number(t.sun_req):
            sun = inputs.previous_day_sun_hours or 0.0
            bad = state.bad_sun_days + 1 if sun < t.sun_req else 0
            counters["bad_sun_days"] = bad
            if bad > t.sun_grace_days:
                return _die(replace(state, **counters), DeathReason.NOT_ENOUGH_SUN, instant,
                            {"sun_hours": sun, "min_required": t.sun_req, "bad_sun_days": bad})

    return replace(state, **counters) if counters else state
