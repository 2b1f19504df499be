"""
Solar geometry for a garden location (NOAA solar-position equations,
degree-level accuracy).

Raw azimuths are measured from South, positive towards West; the scene uses a
screen convention (0=N, 90=E, 180=S, 270=W) obtained with :func:`to_screen_azimuth`.
"""

import math
import datetime as dt
from typing import Tuple

from sproutsim.constants import SECONDS_PER_DAY
from sproutsim.sim.simulation_data import SunDirection

# apparent sunrise/sunset: refraction plus solar disc radius
SUNRISE_ZENITH_DEG = 90.833


def _to_utc(instant: dt.datetime) -> dt.datetime:
    # naive datetimes are taken to be UTC
    if instant.tzinfo is None:
        return instant.replace(tzinfo=dt.timezone.utc)
    return instant.astimezone(dt.timezone.utc)


def _julian_day(t_utc: dt.datetime) -> float:
    y, m = t_utc.year, t_utc.month
    d = t_utc.day + (t_utc.hour + t_utc.minute/60 + t_utc.second/3600)/24.0
    if m <= 2:
        y -= 1
        m += 12
    a = y // 100
    b = 2 - a + a // 4
    return int(365.25*(y + 4716)) + int(30.6001*(m + 1)) + d + b - 1524.5


def _solar_terms(t_utc: dt.datetime) -> Tuple[float, float]:
    """ Return (declination_deg, equation_of_time_minutes) at ``t_utc``. """
    T = (_julian_day(t_utc) - 2451545.0) / 36525.0

    L0 = (280.46646 + 36000.76983*T + 0.0003032*T*T) % 360.0
    M = 357.52911 + 35999.05029*T - 0.0001537*T*T
    e = 0.016708634 - 0.000042037*T - 0.0000001267*T*T

    Mrad = math.radians(M)
    C = (1.914602 - 0.004817*T - 0.000014*T*T)*math.sin(Mrad) \
        + (0.019993 - 0.000101*T)*math.sin(2*Mrad) \
        + 0.000289*math.sin(3*Mrad)

    omega = 125.04 - 1934.136*T
    lam = L0 + C - 0.00569 - 0.00478*math.sin(math.radians(omega))

    eps0 = 23 + (26 + ((21.448 - (46.8150*T + 0.00059*T*T - 0.001813*T*T*T))/60.0))/60.0
    eps = eps0 + 0.00256*math.cos(math.radians(omega))

    decl = math.degrees(math.asin(math.sin(math.radians(eps))*math.sin(math.radians(lam))))

    y = math.tan(math.radians(eps/2))**2
    eqtime = 4*math.degrees(
        y*math.sin(2*math.radians(L0)) - 2*e*math.sin(Mrad) + 4*e*y*math.sin(Mrad)*math.cos(2*math.radians(L0))
        - 0.5*y*y*math.sin(4*math.radians(L0)) - 1.25*e*e*math.sin(2*Mrad)
    )
    return decl, eqtime


def solar_position(lat: float, lon: float, instant: dt.datetime) -> Tuple[float, float]:
    """ Return (raw_azimuth_deg_from_south, elevation_deg). """
    t_utc = _to_utc(instant)
    decl, eqtime = _solar_terms(t_utc)

    minutes_utc = t_utc.hour*60 + t_utc.minute + t_utc.second/60.0
    tst_minutes = (minutes_utc + eqtime + 4.0*lon) % 1440.0
    H = math.radians(tst_minutes/4.0 - 180.0)

    lat_r = math.radians(lat)
    decl_r = math.radians(decl)

    sin_alt = math.sin(lat_r)*math.sin(decl_r) + math.cos(lat_r)*math.cos(decl_r)*math.cos(H)
    elevation = math.degrees(math.asin(max(-1.0, min(1.0, sin_alt))))

    raw_azimuth = math.degrees(math.atan2(
        math.sin(H),
        math.cos(H)*math.sin(lat_r) - math.tan(decl_r)*math.cos(lat_r)
    ))
    return raw_azimuth, elevation


def to_screen_azimuth(raw_azimuth_deg: float) -> float:
    return (raw_azimuth_deg + 180.0) % 360.0


def _day_events(lat, lon, instant):
    """ Solar noon, sunrise and sunset (None in polar day/night) and daylight seconds for the instant's day. """
    tz = instant.tzinfo
    day_start = dt.datetime.combine(instant.date(), dt.time(0), tzinfo=dt.timezone.utc)

    # evaluate declination/equation of time near the day's transit
    decl, eqtime = _solar_terms(day_start + dt.timedelta(minutes=720 - 4.0*lon))
    noon_min = 720 - 4.0*lon - eqtime

    def at(minutes):
        t = day_start + dt.timedelta(minutes=minutes)
        return t.replace(tzinfo=None) if tz is None else t.astimezone(tz)

    lat_r = math.radians(lat)
    decl_r = math.radians(decl)
    cos_ha = (math.cos(math.radians(SUNRISE_ZENITH_DEG))/(math.cos(lat_r)*math.cos(decl_r))
              - math.tan(lat_r)*math.tan(decl_r))

    if cos_ha > 1.0:
        return at(noon_min), None, None, 0.0
    if cos_ha < -1.0:
        return at(noon_min), None, None, float(SECONDS_PER_DAY)

    ha_deg = math.degrees(math.acos(cos_ha))
    sunrise = at(noon_min - 4.0*ha_deg)
    sunset = at(noon_min + 4.0*ha_deg)
    return at(noon_min), sunrise, sunset, 8.0*ha_deg*60.0


def compute_sun_direction(lat: float, lon: float, instant: dt.datetime) -> SunDirection:
    """
    Sun direction and day events for (lat, lon) at ``instant``.

    Event times are returned in the instant's timezone (naive UTC for naive instants).
    """
    raw_azimuth, elevation = solar_position(lat, lon, instant)
    noon, sunrise, sunset, daylight = _day_events(lat, lon, instant)
    return SunDirection(
        elevation_deg=elevation,
        azimuth_deg=to_screen_azimuth(raw_azimuth),
        sunrise=sunrise,
        sunset=sunset,
        solar_noon=noon,
        daylight_seconds=daylight,
    )
