"""
Single resolution step turning the raw inputs of one tick (weather report,
admin overrides, soil reading) into the environment that growth and
mortality both consume.
"""

from typing import Optional

from sproutsim.sim.simulation_data import EffectiveEnvironment, StressOverrides, WeatherReport
from sproutsim.utils.array_math import is_number


def flat_hourly_series(mean_c, hours=24) -> Optional[tuple]:
    """ 24 identical samples at the daily mean (documented stand-in for missing hourly data). """
    if not is_number(mean_c):
        return None
    return tuple(float(mean_c) for _ in range(hours))


def resolve_environment(report: Optional[WeatherReport], overrides: Optional[StressOverrides],
                        soil_moisture_mm) -> EffectiveEnvironment:
    """
    Resolve the effective environment for one tick.

    Enabled overrides are applied first and fully replace the matching real input:
    a fixed ``temp_c`` becomes the measured 24-hour series (and the daily mean),
    a fixed ``soil_moisture`` replaces the soil reading. Otherwise the report's
    hourly series is used when it has 24 samples; without one, only the flat
    daily-mean series is provided for daily temperature adequacy.
    """
    overridden = False
    date_iso = report.day.date_iso if report is not None else None

    if overrides is not None and overrides.enabled and is_number(overrides.soil_moisture):
        soil_moisture_mm = float(overrides.soil_moisture)
        overridden = True

    if overrides is not None and overrides.enabled and is_number(overrides.temp_c):
        series = flat_hourly_series(overrides.temp_c)
        return EffectiveEnvironment(
            date_iso=date_iso,
            hourly_temps_c=series,
            series_temps_c=series,
            daily_mean_c=float(overrides.temp_c),
            soil_moisture_mm=soil_moisture_mm,
            overridden=True,
        )

    if report is None:
        return EffectiveEnvironment(None, None, None, None, soil_moisture_mm, overridden)

    hourly = None
    if report.hourly is not None and report.hourly.is_complete:
        hourly = tuple(report.hourly.temp_c[:24])
    mean = report.day.t_mean_c if is_number(report.day.t_mean_c) else None

    return EffectiveEnvironment(
        date_iso=date_iso,
        hourly_temps_c=hourly,
        series_temps_c=hourly if hourly is not None else flat_hourly_series(mean),
        daily_mean_c=mean,
        soil_moisture_mm=soil_moisture_mm,
        overridden=overridden,
    )
