###############################################################
#  water.py
###############################################################

from typing import Optional

from sproutsim.constants import (
    FALLBACK_ET0_MM, DEFAULT_ROOT_DEPTH_M, DEFAULT_AWC_MM_PER_M,
    DEFAULT_KC, KC_INITIAL_END, KC_LATE_START,
)
from sproutsim.sim.simulation_data import SoilState, WaterComfortBand, DayWeather
from sproutsim.sim.lifestage import age_in_days
from sproutsim.utils.array_math import clamp, is_number, linear_ramp
from sproutsim.utils.log import Reporter

r = Reporter()


class WaterBalance:
    """
    Owner of one bed's soil water store.

    The store is advanced at most once per weather day and only forward in
    simulated time: a day at or before the last applied one (by calendar date,
    not by wall-clock or tick count) is ignored, so replaying, pausing or
    rewinding the clock never applies the same day twice.

    Parameters
    ----------
    soil : SoilState
        Initial state; mutated in place.
    water_use_factor : float
        Multiplier on ET0 for the daily demand (0 ignores ET0 entirely).
    """

    def __init__(self, soil: SoilState, water_use_factor=1.0):
        self.soil = soil
        self.water_use_factor = water_use_factor
        self.last_applied_day: Optional[str] = None
        self._last_applied_key: Optional[int] = None
        self._check_bounds()

    def advance_day(self, day: DayWeather) -> bool:
        """ Apply one day's precipitation, ET demand and percolation; False if not after the last applied day. """
        if day is None:
            return False
        if self._last_applied_key is not None and day.key <= self._last_applied_key:
            return False

        demand = (day.et0_mm if is_number(day.et0_mm) else 0.0) * self.water_use_factor
        loss = self.soil.percolation_mm_per_day or 0.0
        precip = day.precip_mm if is_number(day.precip_mm) else 0.0
        prev = self.soil.moisture_mm
        moisture = float(clamp(prev + precip - demand - loss, 0.0, self.soil.capacity_mm))

        # commit only after the full update is computed
        self.soil.moisture_mm = moisture
        self.last_applied_day = day.date_iso
        self._last_applied_key = day.key
        self._check_bounds()

        et0_str = f"{day.et0_mm:.2f}" if is_number(day.et0_mm) else "n/a"
        r.report(f"Water update for {day.date_iso}: precip {precip:.2f} mm, ET0 {et0_str}, "
                 f"moisture {prev:.2f} -> {moisture:.2f} mm")
        return True

    def irrigate(self, mm):
        """ Add ``mm`` of water (negative amounts are ignored), clamped to capacity. """
        add = max(0.0, mm) if is_number(mm) else 0.0
        self.soil.moisture_mm = float(clamp(self.soil.moisture_mm + add, 0.0, self.soil.capacity_mm))
        self._check_bounds()
        return self.soil.moisture_mm

    def _check_bounds(self):
        if not 0.0 <= self.soil.moisture_mm <= self.soil.capacity_mm:
            msg = (f"Soil moisture {self.soil.moisture_mm} mm outside [0, {self.soil.capacity_mm}] mm")
            r.report(msg, level="ERROR")
            raise AssertionError(msg)


def compute_water_comfort_band(kc, et0_mm, capacity_mm, root_depth_m=None,
                               awc_mm_per_m=None) -> WaterComfortBand:
    """
    Comfortable soil-moisture range from FAO-56 style terms.

    ``etc = kc * et0``, depletion fraction ``p = clamp(0.5 + 0.04 * (5 - etc), 0.3, 0.8)``,
    ``TAW = clamp(awc * root_depth, 0, capacity)``, ``RAW = p * TAW``;
    ``water_max = 0.9 * TAW`` and ``water_min = water_max - RAW`` (both >= 0).
    Missing inputs fall back to defaults, so the band is always ordered.
    """
    kc = kc if is_number(kc) else DEFAULT_KC
    et0 = et0_mm if is_number(et0_mm) else FALLBACK_ET0_MM
    root_depth_m = root_depth_m if is_number(root_depth_m) else DEFAULT_ROOT_DEPTH_M
    awc_mm_per_m = awc_mm_per_m if is_number(awc_mm_per_m) else DEFAULT_AWC_MM_PER_M
    capacity_mm = max(0.0, capacity_mm) if is_number(capacity_mm) else 0.0

    etc = max(0.0, kc * et0)
    p = float(clamp(0.5 + 0.04 * (5 - etc), 0.3, 0.8))
    taw = float(clamp(awc_mm_per_m * root_depth_m, 0.0, capacity_mm))
    raw = p * taw

    water_max = max(0.0, 0.9 * taw)
    water_min = float(clamp(water_max - raw, 0.0, water_max))
    return WaterComfortBand(water_min, water_max, etc=etc, p=p, taw=taw)


def kc_for_stage(kc_profile, age_days, maturity_days) -> float:
    """ Stage crop coefficient: ``initial`` before 20% of maturity, ``late`` after 80%, else ``mid``. """
    if kc_profile is None:
        return DEFAULT_KC
    if not is_number(maturity_days) or maturity_days <= 0 or not is_number(age_days):
        return kc_profile.mid
    frac = age_days / maturity_days
    if frac < KC_INITIAL_END:
        return kc_profile.initial
    if frac > KC_LATE_START:
        return kc_profile.late
    return kc_profile.mid


def water_efficiency(moisture_mm, water_min, water_max) -> float:
    # unknown moisture does not limit growth
    if not is_number(moisture_mm):
        return 1.0
    return linear_ramp(moisture_mm, water_min, water_max)


def effective_water_limits(attrs, band: WaterComfortBand):
    """ Species ``water_min``/``water_max`` override the dynamic band; ``min <= max`` is kept. """
    water_min = attrs.water_min if is_number(attrs.water_min) else band.water_min
    water_max = attrs.water_max if is_number(attrs.water_max) else band.water_max
    return min(water_min, water_max), water_max


_ROOT_DEPTHS = (
    ("lettuce", 0.2),
    ("carrot", 0.3),
    ("pepper", 0.45),
    ("tomato", 0.5),
    ("cucumber", 0.45),
)


def guess_root_depth(plant_name) -> float:
    name = (plant_name or "").lower()
    for key, depth in _ROOT_DEPTHS:
        if key in name:
            return depth
    return DEFAULT_ROOT_DEPTH_M


def band_for_plant(plant, soil: SoilState, et0_mm, instant) -> WaterComfortBand:
    """ Comfort band of ``plant`` at ``instant`` using its stage kc and root depth. """
    attrs = plant.species
    kc = kc_for_stage(attrs.kc_profile, age_in_days(plant.planted_at, instant), attrs.maturity_days)
    root_depth = attrs.root_depth_m if is_number(attrs.root_depth_m) else guess_root_depth(attrs.name)
    return compute_water_comfort_band(kc, et0_mm, soil.capacity_mm, root_depth_m=root_depth)
