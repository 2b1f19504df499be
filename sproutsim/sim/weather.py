###############################################################
#  weather.py
###############################################################

import asyncio
import calendar
import datetime as dt
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Optional

import numpy as np
import xarray as xr

from sproutsim.constants import FORECAST_HORIZON_DAYS, TILE_STEP
from sproutsim.sim.simulation_data import DayWeather, HourlyWeather, WeatherReport
from sproutsim.utils.tiling import tile_key
from sproutsim.utils.log import Reporter

r = Reporter()

CLIMATOLOGY_VARIABLES = ("temperature_2m", "precipitation", "et0_fao_evapotranspiration")


class WeatherFetchError(RuntimeError):
    """ A weather provider could not deliver a report for the requested date. """


def summarize_hourly(date_iso, temp_c, precip_mm=None, et0_mm=None, time_iso=None) -> Optional[WeatherReport]:
    """
    Build a daily summary from hourly samples: mean/min/max temperature and summed
    precipitation and ET0 (None without an ET0 series). Returns None without temperatures.
    """
    temps = np.asarray([] if temp_c is None else temp_c, dtype=float)
    if temps.size == 0:
        return None
    precip = np.asarray([] if precip_mm is None else precip_mm, dtype=float)
    et0 = None if et0_mm is None or len(et0_mm) == 0 else np.asarray(et0_mm, dtype=float)

    day = DayWeather(
        date_iso=date_iso,
        t_mean_c=float(np.nanmean(temps)),
        t_min_c=float(np.nanmin(temps)),
        t_max_c=float(np.nanmax(temps)),
        precip_mm=float(np.nansum(precip)),
        et0_mm=None if et0 is None else float(np.nansum(et0)),
    )
    hourly = HourlyWeather(
        temp_c=tuple(float(t) for t in temps),
        precip_mm=tuple(float(p) for p in precip) if precip.size else None,
        et0_mm=None if et0 is None else tuple(float(e) for e in et0),
        time_iso=None if time_iso is None else tuple(time_iso),
    )
    return WeatherReport(day=day, hourly=hourly)


class WeatherProviderBase(ABC):
    """
    Abstract interface for weather sources.

    All providers (forecast, climatological normals, scripted) must implement this
    interface; the simulation only consumes the common :class:`WeatherReport` shape.
    """

    @abstractmethod
    def get_weather(self, lat: float, lon: float, date: dt.date) -> WeatherReport:
        """
        Return the report for ``date`` at (lat, lon).
        Raise :class:`WeatherFetchError` when it cannot be produced.
        """
        pass


class StaticWeatherProvider(WeatherProviderBase):
    """
    In-memory reports keyed by ISO date, for scripted runs and tests.

    Dates without a report get ``default`` re-dated to the requested day, or
    raise :class:`WeatherFetchError` when no default is given.
    """

    def __init__(self, reports=(), default: Optional[WeatherReport] = None):
        self.reports = {rep.day.date_iso: rep for rep in reports}
        self.default = default

    def add(self, report: WeatherReport):
        self.reports[report.day.date_iso] = report

    def get_weather(self, lat, lon, date):
        date_iso = date.isoformat()
        if date_iso in self.reports:
            return self.reports[date_iso]
        if self.default is not None:
            return replace(self.default, day=replace(self.default.day, date_iso=date_iso))
        raise WeatherFetchError(f"No weather available for {date_iso}")


def normals_doy(date: dt.date) -> int:
    """ Day of year used to index normals; the leap day (DOY 60) maps to 59. """
    doy = date.timetuple().tm_yday
    return 59 if calendar.isleap(date.year) and doy == 60 else doy


def climatology_filename(lat, lon, step=TILE_STEP) -> str:
    return "climatology_" + tile_key(lat, lon, step).replace(",", "_") + ".nc"


def save_climatology(directory, lat, lon, normals: dict, step=TILE_STEP) -> Path:
    """
    Write hourly normals of one tile to NetCDF.

    ``normals`` maps each of :data:`CLIMATOLOGY_VARIABLES` to an array of shape
    (n_doy, 24); row ``i`` holds day-of-year ``i + 1``.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    data_vars = {}
    for name, values in normals.items():
        values = np.asarray(values, dtype=float)
        data_vars[name] = xr.DataArray(values, dims=("doy", "hour"))
    n_doy = next(iter(data_vars.values())).shape[0]
    ds = xr.Dataset(data_vars=data_vars,
                    coords={"doy": np.arange(1, n_doy + 1), "hour": np.arange(24)})
    ds.attrs.update(tile=tile_key(lat, lon, step))

    path = directory / climatology_filename(lat, lon, step)
    ds.to_netcdf(path, engine="scipy")
    return path


class ClimatologyProvider(WeatherProviderBase):
    """
    Long-range provider serving hourly climatological normals from per-tile
    NetCDF files written by :func:`save_climatology`.
    """

    def __init__(self, directory, step=TILE_STEP):
        self.directory = Path(directory)
        self.step = step
        self._cache: dict[str, xr.Dataset] = {}

    def _load(self, lat, lon) -> xr.Dataset:
        key = tile_key(lat, lon, self.step)
        if key not in self._cache:
            path = self.directory / climatology_filename(lat, lon, self.step)
            try:
                with xr.open_dataset(path, engine="scipy") as ds:
                    self._cache[key] = ds.load()
            except (OSError, ValueError) as e:
                raise WeatherFetchError(f"Climatology not found for tile {key}: {e}") from e
        return self._cache[key]

    def get_weather(self, lat, lon, date):
        ds = self._load(lat, lon)
        doy = normals_doy(date)
        try:
            day = ds.sel(doy=doy)
        except KeyError as e:
            raise WeatherFetchError(f"No normals for DOY={doy}") from e

        series = {}
        for name in CLIMATOLOGY_VARIABLES:
            series[name] = day[name].values if name in day else None
        if series["temperature_2m"] is None:
            raise WeatherFetchError(f"Climatology for tile {tile_key(lat, lon, self.step)} has no temperature_2m")

        return summarize_hourly(date.isoformat(), series["temperature_2m"],
                                precip_mm=series["precipitation"],
                                et0_mm=series["et0_fao_evapotranspiration"])


class HorizonWeatherProvider(WeatherProviderBase):
    """
    Routes dates within ``horizon_days`` of ``today`` to a near-range provider
    (e.g. a forecast) and all other dates to a far-range one (e.g. normals).
    """

    def __init__(self, near: WeatherProviderBase, far: WeatherProviderBase, today: dt.date,
                 horizon_days=FORECAST_HORIZON_DAYS):
        self.near = near
        self.far = far
        self.today = today
        self.horizon_days = horizon_days

    def get_weather(self, lat, lon, date):
        if abs((date - self.today).days) <= self.horizon_days:
            return self.near.get_weather(lat, lon, date)
        return self.far.get_weather(lat, lon, date)


class WeatherFeed:
    """
    Last-request-wins front end of a provider for one location.

    :meth:`request` runs the provider off the event loop and cancels any request
    it supersedes; results of superseded requests are discarded. Failures are
    kept in :attr:`error` while the last good :attr:`report` is retained.
    """

    def __init__(self, provider: WeatherProviderBase, lat: float, lon: float):
        self.provider = provider
        self.lat = lat
        self.lon = lon
        self.report: Optional[WeatherReport] = None
        self.error: Optional[Exception] = None
        self.loading = False
        self.requested_date: Optional[dt.date] = None
        self._generation = 0
        self._task: Optional[asyncio.Future] = None

    async def request(self, date: dt.date) -> Optional[WeatherReport]:
        """ Fetch ``date``; returns None if superseded, cancelled or failed. """
        self._generation += 1
        generation = self._generation
        self._cancel_task()
        self.requested_date = date
        self.loading = True
        self.error = None

        self._task = asyncio.ensure_future(
            asyncio.to_thread(self.provider.get_weather, self.lat, self.lon, date))
        try:
            report = await self._task
        except asyncio.CancelledError:
            if generation != self._generation:
                return None
            self.loading = False
            raise
        except WeatherFetchError as e:
            if generation == self._generation:
                self._set_error(date, e)
            return None

        if generation != self._generation:
            r.report(f"Discarding stale weather for {date}", level="DEBUG")
            return None
        self._set_report(report)
        return report

    def fetch(self, date: dt.date) -> Optional[WeatherReport]:
        """ Blocking fetch; supersedes any in-flight :meth:`request`. """
        self._generation += 1
        self._cancel_task()
        self.requested_date = date
        try:
            report = self.provider.get_weather(self.lat, self.lon, date)
        except WeatherFetchError as e:
            self._set_error(date, e)
            return None
        self._set_report(report)
        return report

    def cancel(self):
        """ Abort any in-flight request (teardown). """
        self._generation += 1
        self._cancel_task()
        self.loading = False

    def _cancel_task(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _set_report(self, report):
        self.report = report
        self.error = None
        self.loading = False

    def _set_error(self, date, error):
        r.report(f"Weather fetch for {date} failed: {error}", level="WARNING")
        self.error = error
        self.loading = False
