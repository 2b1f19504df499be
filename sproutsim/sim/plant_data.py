###############################################################
#  plant_data.py
###############################################################

import json
import datetime as dt
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from dataclasses import dataclass, field

from sproutsim.constants import DEFAULT_GRACE_HOURS, DEFAULT_SUN_GRACE_DAYS
from sproutsim.sim.growth import compute_base_growth_rate, parse_maturity_days
from sproutsim.utils.log import Reporter

r = Reporter()


class GrowthPhase(str, Enum):
    SEED = "seed"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    FRUITING = "fruiting"
    DEAD = "dead"


class DeathReason(str, Enum):
    TOO_COLD = "too_cold"
    TOO_HOT = "too_hot"
    TOO_DRY = "too_dry"
    TOO_WET = "too_wet"
    NOT_ENOUGH_SUN = "not_enough_sun"
    OLD_AGE = "old_age"


@dataclass(frozen=True)
class DeathInfo:
    """
    Terminal record of a death: cause, simulated instant, and free-form details
    (threshold crossed, counter value, ``debug_kill`` for manual kills).
    """

    reason: DeathReason
    died_at: dt.datetime
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class KcProfile:
    """ Crop coefficients for the initial, mid-season and late growth stages. """

    initial: float
    mid: float
    late: float


@dataclass(frozen=True)
class GraceHours:
    """ Consecutive violating hours tolerated per hourly stressor before death. """

    cold: int = DEFAULT_GRACE_HOURS["cold"]
    heat: int = DEFAULT_GRACE_HOURS["heat"]
    dry: int = DEFAULT_GRACE_HOURS["dry"]
    wet: int = DEFAULT_GRACE_HOURS["wet"]


@dataclass
class PlantAttributes:
    """
    Static species (base plant) parameters.

    Values are read from a species configuration JSON file (e.g. `tomato.json`)
    with :func:`load_plant_attributes`. Only ``species_id`` is required; every
    other threshold is optional, and a missing threshold disables whatever
    depends on it rather than raising.

    Parameters (General)
    --------------------
    species_id : str
        Registry key of the species.
    name : str
        Display name, also used to guess a root depth when ``root_depth_m`` is unset.
    sun_req : float
        Sunlit hours per day needed for full growth efficiency.
    max_height, max_canopy_radius : float
        Size caps, in bed units.
    days_to_maturity : str or int
        Free-text maturity spec (e.g. ``"60-70"``); the smallest integer found is used.

    Parameters (Stress)
    -------------------
    temp_min, temp_max : float
        Hourly temperature thresholds (°C) for cold and heat stress.
    water_min, water_max : float
        Explicit soil-moisture limits (mm) overriding the dynamic comfort band.
    grace_hours : GraceHours
        Tolerated consecutive violating hours per stressor.
    sun_grace_days : int
        Tolerated consecutive days below ``sun_req``.

    Parameters (Timing)
    -------------------
    germination_days, flowering_days, fruiting_days, lifespan_days : float
        Age thresholds (days since planting) of the life-stage windows.

    Parameters (Water)
    ------------------
    kc_profile : KcProfile
        Stage crop coefficients; a flat default is used when absent.
    root_depth_m : float
        Effective rooting depth used to size total available water.

    Attributes (Computed)
    ---------------------
    base_growth_rate : float or None
        ``max_height / parsed maturity days`` unless given explicitly
        (computed in :meth:`__post_init__`). None when it cannot be derived.
    """

    species_id: str
    name: str = ""
    sun_req: Optional[float] = None
    max_height: Optional[float] = None
    max_canopy_radius: Optional[float] = None
    days_to_maturity: Optional[Union[str, int]] = None

    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    water_min: Optional[float] = None
    water_max: Optional[float] = None
    grace_hours: GraceHours = field(default_factory=GraceHours)
    sun_grace_days: int = DEFAULT_SUN_GRACE_DAYS

    germination_days: Optional[float] = None
    flowering_days: Optional[float] = None
    fruiting_days: Optional[float] = None
    lifespan_days: Optional[float] = None

    kc_profile: Optional[KcProfile] = None
    root_depth_m: Optional[float] = None

    base_growth_rate: Optional[float] = None

    def __post_init__(self):
        """ Initialize the computed growth rate and nested attribute objects. """
        if not self.name:
            self.name = self.species_id
        if isinstance(self.grace_hours, dict):
            self.grace_hours = GraceHours(**self.grace_hours)
        if isinstance(self.kc_profile, dict):
            self.kc_profile = KcProfile(**self.kc_profile)
        if self.base_growth_rate is None:
            self.base_growth_rate = compute_base_growth_rate(self.max_height, self.days_to_maturity)
            if self.base_growth_rate is None:
                r.report(f"No growth rate derivable for species \"{self.species_id}\" "
                         f"(max_height={self.max_height}, days_to_maturity={self.days_to_maturity!r})",
                         level="WARNING")

    @property
    def maturity_days(self) -> Optional[int]:
        return parse_maturity_days(self.days_to_maturity)


def load_plant_attributes(filename: Union[str, Path]) -> PlantAttributes:
    """ Parse a species input json file and store attributes in a dataclass. """
    try:
        with open(filename, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        msg = f"Species file {filename} is not valid JSON: {e}"
        r.report(msg, level="ERROR")
        raise ValueError(msg) from e

    if "species_id" not in data:
        data["species_id"] = Path(filename).stem
    try:
        return PlantAttributes(**data)
    except TypeError as e:
        msg = f"Species file {filename} has unexpected or missing keys: {e}"
        r.report(msg, level="ERROR")
        raise ValueError(msg) from e


class PlantRegistry:
    """ Read-only lookup of species attributes by id. """

    def __init__(self, attributes=()):
        self._species: dict[str, PlantAttributes] = {}
        for attrs in attributes:
            if attrs.species_id in self._species:
                msg = f"Duplicate species id \"{attrs.species_id}\" in registry"
                r.report(msg, level="ERROR")
                raise ValueError(msg)
            self._species[attrs.species_id] = attrs

    @classmethod
    def from_files(cls, filenames):
        return cls(load_plant_attributes(Path(f)) for f in filenames)

    @classmethod
    def from_directory(cls, directory):
        return cls.from_files(sorted(Path(directory).glob("*.json")))

    def get(self, species_id: str) -> PlantAttributes:
        try:
            return self._species[species_id]
        except KeyError:
            msg = f"Unknown species id \"{species_id}\""
            r.report(msg, level="ERROR")
            raise KeyError(msg) from None

    def __contains__(self, species_id):
        return species_id in self._species

    def __iter__(self):
        return iter(self._species.values())

    def __len__(self):
        return len(self._species)


@dataclass
class PlantInstance:
    """
    A plant placed in a bed.

    Attributes
    ----------
    instance_id : str
        Unique id within the bed.
    species : PlantAttributes
        Static species parameters.
    x, y : float
        Bed-local position.
    height, canopy_radius : float
        Current size; non-decreasing while alive and capped at the species maxima.
    planted_at : datetime
        Simulated instant of planting; immutable.
    phase : GrowthPhase
        Advisory life-stage label, refreshed every tick.
    leaf_growth : float
        Fraction of maximum height reached (0-1), used for display.
    last_grown_day_key : int or None
        Day key of the latest daily growth increment; earlier or equal days never grow again.
    """

    instance_id: str
    species: PlantAttributes
    x: float
    y: float
    planted_at: dt.datetime
    height: float = 0.0
    canopy_radius: float = 0.0
    phase: GrowthPhase = GrowthPhase.SEED
    leaf_growth: float = 0.0
    last_grown_day_key: Optional[int] = field(default=None, repr=False)

    def __setattr__(self, name, value):
        if name == "planted_at" and "planted_at" in self.__dict__:
            msg = f"planted_at of plant \"{self.instance_id}\" cannot be changed"
            r.report(msg, level="ERROR")
            raise AttributeError(msg)
        super().__setattr__(name, value)
