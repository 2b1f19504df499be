import datetime as dt
from pytest import fixture
from pathlib import Path

from sproutsim.sim.plant_data import PlantAttributes, PlantInstance
from sproutsim.sim.simulation_data import SunDirection
from sproutsim.sim.weather import summarize_hourly


@fixture
def attributes():
    # Species test parameters
    return {
        "species_id"       : "test_plant",
        "sun_req"          : 8,
        "max_height"       : 30,
        "max_canopy_radius": 15,
        "days_to_maturity" : "60–70",
        "temp_min"         : 5,
        "temp_max"         : 35,
    }


@fixture
def start():
    return dt.datetime(2024, 6, 1, 0, 0)


@fixture
def make_plant(attributes, start):
    def _make(instance_id="p1", x=0.0, y=0.0, planted_at=None, **overrides):
        attrs = PlantAttributes(**{**attributes, **overrides})
        return PlantInstance(instance_id=instance_id, species=attrs, x=x, y=y,
                             planted_at=planted_at if planted_at is not None else start)
    return _make


@fixture
def make_report():
    def _make(date, temps=None, precip_total=0.0, et0_total=0.0):
        temps = [20.0] * 24 if temps is None else temps
        precip = [precip_total / 24] * 24
        et0 = [et0_total / 24] * 24
        return summarize_hourly(date.isoformat(), temps, precip_mm=precip, et0_mm=et0)
    return _make


@fixture
def make_sun():
    def _make(elevation, azimuth):
        noon = dt.datetime(2024, 6, 1, 12)
        return SunDirection(elevation_deg=elevation, azimuth_deg=azimuth, sunrise=None,
                            sunset=None, solar_noon=noon, daylight_seconds=43200.)
    return _make


@fixture
def sample_data_path():
    return Path(__file__).parent / "sample_data"
