"""
SproutSim simulates plant growth, stress and death in garden beds driven by
a simulated clock, sun geometry, weather and soil moisture. The user provides
one JSON file per species (sun requirement, size caps, days to maturity,
temperature/water thresholds, grace periods, life-stage timing, crop
coefficients), places plant instances in one or more beds, and runs the beds
against a weather provider (forecast, climatological normals or scripted
reports).

This file exposes the classes that form the basis of SproutSim, so they can
be imported without complete module paths:

>>> import sproutsim

A minimal headless run needs a species registry, a bed and a provider:

>>> from sproutsim import PlantRegistry, Bed, GardenSimulation, StaticWeatherProvider

Interactive front ends drive the same beds from a TimeController:

>>> from sproutsim import TimeController

Plotting requires the optional dependencies (``pip install sproutsim[plot]``)
and is loaded lazily on first access.

"""

from sproutsim.sim.plant_data import (
    PlantAttributes, PlantRegistry, PlantInstance, load_plant_attributes,
    DeathReason, GrowthPhase,
)
from sproutsim.sim.simulation_data import StressOverrides, SoilState
from sproutsim.sim.bed import Bed
from sproutsim.sim.clock import TimeController, RunMode
from sproutsim.sim.coupler import BedCoupler
from sproutsim.sim.base import GardenSimulation
from sproutsim.sim.weather import (
    StaticWeatherProvider, ClimatologyProvider, HorizonWeatherProvider,
    WeatherFeed, WeatherFetchError, summarize_hourly,
)
from sproutsim.sim.sun import compute_sun_direction
from sproutsim.utils.log import Reporter

__all__ = [
    "PlantAttributes", "PlantRegistry", "PlantInstance", "load_plant_attributes",
    "DeathReason", "GrowthPhase", "StressOverrides", "SoilState", "Bed",
    "TimeController", "RunMode", "BedCoupler", "GardenSimulation",
    "StaticWeatherProvider", "ClimatologyProvider", "HorizonWeatherProvider",
    "WeatherFeed", "WeatherFetchError", "summarize_hourly",
    "compute_sun_direction", "Reporter",
]


def _optional_import(name: str):
    """ Attempt to import an optional module when accessed. """
    import importlib
    import warnings

    import_paths = {
        "plot": "sproutsim.utils.plotter",
    }

    try:
        return importlib.import_module(import_paths[name])
    except ImportError as e:
        warnings.warn(
            f"Optional dependency for '{name}' not found. "
            f"Install with: pip install sproutsim[{name}]",
            ImportWarning,
            stacklevel=2,
        )
        raise e


class _LazyModule:
    """ Lazy loading of an optional module when first accessed. """

    def __init__(self, name):
        self._name = name
        self._module = None

    def __getattr__(self, attr):
        if self._module is None:
            self._module = _optional_import(self._name)
        return getattr(self._module, attr)


# Expose optional plotting lazily
plotting = _LazyModule("plot")
