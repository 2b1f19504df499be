###############################################################
#  coupler.py
###############################################################

import datetime as dt
from typing import Optional

from sproutsim.sim.bed import Bed
from sproutsim.sim.environment import resolve_environment
from sproutsim.sim.growth import SunlightTally, grow_plant, temp_ok_hours, temperature_efficiency
from sproutsim.sim.lifestage import compute_phase
from sproutsim.sim.mortality import (
    MortalityState, MortalityInputs, MortalityThresholds,
    step_mortality, kill_now, assert_monotonic,
)
from sproutsim.sim.outputs import SnapshotStore
from sproutsim.sim.plant_data import GrowthPhase, DeathReason
from sproutsim.sim.shadow import compute_shadows, ShadowData
from sproutsim.sim.simulation_data import (
    SunDirection, WeatherReport, StressOverrides, EffectiveEnvironment,
    LiveStats, GrowthSnapshot, day_key, date_from_key,
)
from sproutsim.sim.sun import compute_sun_direction
from sproutsim.sim.water import band_for_plant, effective_water_limits, water_efficiency
from sproutsim.utils.array_math import is_number
from sproutsim.utils.log import Reporter

r = Reporter()


class BedCoupler:
    """
    Per-tick orchestration of one bed.

    Each :meth:`update` runs the components in a fixed order: the soil water
    store is advanced for the weather day first, then the effective environment
    is resolved, shadows are cast, and per plant the sunlight tally, the daily
    growth (on a day change), the mortality step and the life-stage label are
    updated. Growth and mortality read the same environment; a dead plant's
    size is frozen.

    Parameters
    ----------
    bed : Bed
    lat, lon : float
        Location used for sun geometry when no sun direction is passed in.
    overrides : StressOverrides, optional
        Admin stress overrides; applied before any weather report is consulted.
    treat_daily_mean_as_hourly : bool, optional
        Without an hourly series, use the daily mean as the current-hour
        temperature for cold/heat checks. Default False (checks are skipped).
    on_death : callable, optional
        ``on_death(plant_id, DeathInfo)``, called once per death.
    snapshots : SnapshotStore, optional
        Destination of daily growth snapshots.
    """

    def __init__(self,
                 bed: Bed,
                 lat: float,
                 lon: float,
                 overrides: Optional[StressOverrides] = None,
                 treat_daily_mean_as_hourly=False,
                 on_death=None,
                 snapshots: Optional[SnapshotStore] = None,
                 ):
        self.bed = bed
        self.lat = lat
        self.lon = lon
        self.overrides = overrides if overrides is not None else StressOverrides()
        self.treat_daily_mean_as_hourly = treat_daily_mean_as_hourly
        self.on_death = on_death
        self.snapshots = snapshots if snapshots is not None else SnapshotStore()

        self.tallies: dict[str, SunlightTally] = {}
        self.mortality: dict[str, MortalityState] = {}
        self.temp_ok: dict[str, tuple] = {}  # plant id -> (day key, ok hours)
        self.live_stats: dict[str, LiveStats] = {}
        self.shadows = ShadowData()
        self.report: Optional[WeatherReport] = None
        self.environment: EffectiveEnvironment = resolve_environment(None, self.overrides,
                                                                     bed.soil.moisture_mm)

    def update(self, instant: dt.datetime, sun: Optional[SunDirection] = None,
               report: Optional[WeatherReport] = None):
        """ Advance the bed to ``instant``. ``report`` is used only if it describes the instant's day. """
        self.prune_removed_plants()
        key = day_key(instant)
        if sun is None:
            sun = compute_sun_direction(self.lat, self.lon, instant)

        if report is not None and report.day.key != key:
            r.report(f"Ignoring weather for {report.day.date_iso} at {instant}", level="DEBUG")
            report = None
        self.report = report

        # soil first: growth and the dry/wet checks read the freshly advanced moisture
        if report is not None:
            self.bed.water.advance_day(report.day)

        self.environment = resolve_environment(report, self.overrides, self.bed.soil.moisture_mm)
        self.shadows = compute_shadows(self.bed.scene_objects(), sun)
        sun_up = not sun.is_night

        # on_death may remove plants from the bed mid-loop
        for plant_id, plant in list(self.bed.plants.items()):
            if plant_id not in self.bed.plants:
                continue
            tally = self.tallies.setdefault(plant_id, SunlightTally())
            closed = tally.record(instant, sun_up, plant_id in self.shadows.shaded_ids)
            state = self.mortality.setdefault(plant_id, MortalityState())

            # only a forward day change completes a day; rewinds just restart the tally
            if closed is not None and closed.day_key > key:
                closed = None
            if closed is not None and not state.dead:
                self._grow(plant, closed.day_key, closed.sun_hours, closed.shaded_hours, instant)

            self._step_mortality(plant, instant, closed.sun_hours if closed is not None else None)
            if plant_id not in self.bed.plants:
                continue
            self._record_temp_ok(plant, key)
            self._update_phase(plant, instant)
            self.live_stats[plant_id] = self._live_stats(plant)

    def apply_growth_now(self, instant: dt.datetime) -> list:
        """ Apply today's growth increment immediately; returns ids of plants that grew. """
        key = day_key(instant)
        grown = []
        for plant_id, plant in list(self.bed.plants.items()):
            if self.is_dead(plant_id):
                continue
            tally = self.tallies.get(plant_id)
            if tally is not None and tally.day_key == key:
                sun_hours, shaded_hours = tally.sun_hours, tally.shaded_hours
            else:
                sun_hours, shaded_hours = 0.0, 0.0
            if self._grow(plant, key, sun_hours, shaded_hours, instant):
                grown.append(plant_id)
                self.live_stats[plant_id] = self._live_stats(plant)
        return grown

    def kill_plant(self, plant_id, reason, instant: dt.datetime, details=None):
        """ Manual kill bypassing grace periods (debugging/testing). """
        old = self.mortality.get(plant_id, MortalityState())
        new = kill_now(old, DeathReason(reason), instant, details)
        self._commit_mortality(plant_id, old, new)

    def is_dead(self, plant_id) -> bool:
        state = self.mortality.get(plant_id)
        return state is not None and state.dead

    def death_info(self, plant_id):
        state = self.mortality.get(plant_id)
        return state.info if state is not None else None

    def prune_removed_plants(self):
        for store in (self.tallies, self.mortality, self.temp_ok, self.live_stats):
            for plant_id in [p for p in store if p not in self.bed.plants]:
                del store[plant_id]

    def _water_limits(self, plant, instant):
        et0 = self.report.day.et0_mm if self.report is not None else None
        band = band_for_plant(plant, self.bed.soil, et0, instant)
        return effective_water_limits(plant.species, band)

    def _grow(self, plant, key, sun_hours, shaded_hours, instant) -> bool:
        water_min, water_max = self._water_limits(plant, instant)
        water_eff = water_efficiency(self.environment.soil_moisture_mm, water_min, water_max)
        day, ok_hours = self.temp_ok.get(plant.instance_id, (None, None))
        temp_ok = ok_hours if day == key else None

        if not grow_plant(plant, key, sun_hours, temp_ok, water_eff):
            return False

        self.snapshots.upsert(GrowthSnapshot(
            bed_id=self.bed.bed_id,
            plant_instance_id=plant.instance_id,
            day=date_from_key(key),
            sunlight_hours=sun_hours,
            shaded_hours=shaded_hours,
            temp_ok_hours=temp_ok if temp_ok is not None else float("nan"),
            height=plant.height,
            canopy_radius=plant.canopy_radius,
            inputs={
                "sun_req": plant.species.sun_req,
                "water_eff": water_eff,
                "soil_moisture_mm": self.environment.soil_moisture_mm,
                "overridden": self.environment.overridden,
            },
        ))
        return True

    def _step_mortality(self, plant, instant, previous_day_sun_hours):
        old = self.mortality[plant.instance_id]
        if old.dead:
            return
        env = self.environment
        thresholds = MortalityThresholds.for_plant(plant, self._water_limits(plant, instant),
                                                   soil_capacity_mm=self.bed.soil.capacity_mm)
        inputs = MortalityInputs(
            instant=instant,
            hourly_temps_c=env.hourly_temps_c,
            daily_mean_c=env.daily_mean_c,
            soil_moisture_mm=env.soil_moisture_mm,
            previous_day_sun_hours=previous_day_sun_hours,
            treat_daily_mean_as_hourly=self.treat_daily_mean_as_hourly,
        )
        new = step_mortality(old, inputs, thresholds)
        r.report(f"Stress counters for \"{plant.instance_id}\" at {instant}: cold {new.cold_hours}, "
                 f"heat {new.heat_hours}, dry {new.dry_hours}, wet {new.wet_hours}, "
                 f"bad sun days {new.bad_sun_days}", level="DEBUG")
        self._commit_mortality(plant.instance_id, old, new)

    def _commit_mortality(self, plant_id, old, new):
        assert_monotonic(old, new)
        self.mortality[plant_id] = new
        if new.dead and not old.dead:
            info = new.info
            r.report(f"Plant \"{plant_id}\" in bed \"{self.bed.bed_id}\" died at {info.died_at}: "
                     f"{info.reason.value} {info.details}")
            plant = self.bed.plants.get(plant_id)
            if plant is not None:
                plant.phase = GrowthPhase.DEAD
                self.live_stats[plant_id] = self._live_stats(plant)
            if self.on_death is not None:
                self.on_death(plant_id, info)

    def _record_temp_ok(self, plant, key):
        env = self.environment
        if env.series_temps_c is None:
            return
        attrs = plant.species
        self.temp_ok[plant.instance_id] = (key, temp_ok_hours(env.series_temps_c, attrs.temp_min, attrs.temp_max))

    def _update_phase(self, plant, instant):
        if self.is_dead(plant.instance_id):
            plant.phase = GrowthPhase.DEAD
        else:
            plant.phase = compute_phase(plant.planted_at, instant, plant.species).phase

    def growth_status(self, plant) -> str:
        """ ``"growing"``, ``"dead"``, or ``"static (...)"`` naming the missing growth input. """
        if self.is_dead(plant.instance_id):
            return "dead"
        attrs = plant.species
        if not is_number(attrs.base_growth_rate) or attrs.base_growth_rate <= 0:
            return "static (no growth rate)"
        if not is_number(attrs.sun_req) or attrs.sun_req <= 0:
            return "static (no sun requirement)"
        return "growing"

    def temperature_efficiency(self, plant) -> float:
        return temperature_efficiency(self.environment.daily_mean_c, plant.species.temp_min,
                                      plant.species.temp_max)

    def _live_stats(self, plant) -> LiveStats:
        tally = self.tallies.get(plant.instance_id)
        state = self.mortality.get(plant.instance_id, MortalityState())
        day, ok_hours = self.temp_ok.get(plant.instance_id, (None, None))
        current_day = tally.day_key if tally is not None else None
        return LiveStats(
            plant_id=plant.instance_id,
            height=plant.height,
            canopy=plant.canopy_radius,
            sun_hours=tally.sun_hours if tally is not None else 0.0,
            temp_ok_hours=ok_hours if day == current_day else None,
            is_dead=state.dead,
            death_reason=state.reason.value if state.dead else None,
            phase=plant.phase.value,
            growth_status=self.growth_status(plant),
        )
