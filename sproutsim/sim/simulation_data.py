import datetime as dt
from typing import Optional, Any
from dataclasses import dataclass, field

from sproutsim.constants import DEFAULT_PERCOLATION_MM, MODEL_VERSION


def day_key(instant: dt.datetime) -> int:
    """
    Normalized calendar-day number of a simulated instant.

    Uses the instant's own (local) calendar date, so two instants compare equal
    exactly when they fall on the same local day.
    """
    return instant.date().toordinal()


def hour_key(instant: dt.datetime) -> int:
    return day_key(instant) * 24 + instant.hour


def date_from_key(key: int) -> dt.date:
    return dt.date.fromordinal(key)


@dataclass(frozen=True)
class SunDirection:
    """
    Sun position for one instant and location.

    Attributes:
        elevation_deg (float): Solar elevation above the horizon; <= 0 is night.
        azimuth_deg (float): Screen-convention azimuth (0=N, 90=E, 180=S, 270=W).
        sunrise (Optional[datetime]): None during polar day/night.
        sunset (Optional[datetime]): None during polar day/night.
        solar_noon (datetime): Instant of solar transit on the same day.
        daylight_seconds (float): Length of the day, 0 in polar night, 86400 in polar day.
    """

    elevation_deg: float
    azimuth_deg: float
    sunrise: Optional[dt.datetime]
    sunset: Optional[dt.datetime]
    solar_noon: dt.datetime
    daylight_seconds: float

    @property
    def is_night(self) -> bool:
        return self.elevation_deg <= 0


@dataclass
class SoilState:
    """
    Soil water store of one bed. ``0 <= moisture_mm <= capacity_mm`` always holds.
    """

    capacity_mm: float
    moisture_mm: float
    percolation_mm_per_day: float = DEFAULT_PERCOLATION_MM

    def __post_init__(self):
        self.capacity_mm = max(0.0, float(self.capacity_mm))
        self.moisture_mm = max(0.0, min(float(self.moisture_mm), self.capacity_mm))


@dataclass(frozen=True)
class WaterComfortBand:
    """ Soil-moisture range (mm) in which water efficiency is 1, plus the terms it was sized from. """

    water_min: float
    water_max: float
    etc: float = 0.0
    p: float = 0.0
    taw: float = 0.0


@dataclass(frozen=True)
class DayWeather:
    """
    Daily weather summary as delivered by a weather provider.

    Attributes:
        date_iso (str): YYYY-MM-DD of the simulated day this summary describes.
        t_mean_c, t_min_c, t_max_c (float): Air temperatures (°C).
        precip_mm (float): Total precipitation (mm).
        et0_mm (Optional[float]): FAO reference evapotranspiration (mm); None when not computed.
    """

    date_iso: str
    t_mean_c: float
    t_min_c: float
    t_max_c: float
    precip_mm: float
    et0_mm: Optional[float] = None

    @property
    def date(self) -> dt.date:
        return dt.date.fromisoformat(self.date_iso)

    @property
    def key(self) -> int:
        return self.date.toordinal()


@dataclass(frozen=True)
class HourlyWeather:
    """ Hourly samples for one day; ``temp_c`` is indexed by local hour. """

    temp_c: tuple
    precip_mm: Optional[tuple] = None
    et0_mm: Optional[tuple] = None
    time_iso: Optional[tuple] = None

    @property
    def is_complete(self) -> bool:
        return len(self.temp_c) >= 24


@dataclass(frozen=True)
class WeatherReport:
    day: DayWeather
    hourly: Optional[HourlyWeather] = None


@dataclass
class StressOverrides:
    """
    Administrative stress overrides. When ``enabled``, a non-None ``temp_c``
    replaces every hourly temperature and a non-None ``soil_moisture`` replaces
    the soil moisture reading in all downstream calculations.
    """

    enabled: bool = False
    temp_c: Optional[float] = None
    soil_moisture: Optional[float] = None


@dataclass(frozen=True)
class EffectiveEnvironment:
    """
    The environment every consumer sees for one tick, after overrides and fallbacks.

    Attributes:
        date_iso (Optional[str]): Day the temperatures belong to, None if no weather is known.
        hourly_temps_c (Optional[tuple]): Measured (or overridden) 24-hour series.
        series_temps_c (Optional[tuple]): Series used for daily adequacy; equals
            ``hourly_temps_c`` or, without one, a flat series at the daily mean.
        daily_mean_c (Optional[float]): Daily mean temperature.
        soil_moisture_mm (Optional[float]): Soil moisture reading (bed state or override).
        overridden (bool): True when an admin override replaced any input.
    """

    date_iso: Optional[str]
    hourly_temps_c: Optional[tuple]
    series_temps_c: Optional[tuple]
    daily_mean_c: Optional[float]
    soil_moisture_mm: Optional[float]
    overridden: bool = False


@dataclass(frozen=True)
class LiveStats:
    """ Per-plant, per-tick payload for the display layer. """

    plant_id: str
    height: float
    canopy: float
    sun_hours: float
    temp_ok_hours: Optional[float]
    is_dead: bool
    death_reason: Optional[str]
    phase: str = "vegetative"
    growth_status: str = "growing"


@dataclass(frozen=True)
class GrowthSnapshot:
    """
    Daily record emitted for persistence, unique per (bed_id, plant_instance_id, day).
    """

    bed_id: str
    plant_instance_id: str
    day: dt.date
    sunlight_hours: float
    shaded_hours: float
    temp_ok_hours: float
    height: float
    canopy_radius: float
    model_version: str = MODEL_VERSION
    inputs: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.bed_id, self.plant_instance_id, self.day)
