###############################################################
#  bed.py
###############################################################

import datetime as dt

from sproutsim.constants import DEFAULT_PERCOLATION_MM
from sproutsim.sim.plant_data import PlantAttributes, PlantInstance
from sproutsim.sim.shadow import CanopyObject, StructureObject
from sproutsim.sim.simulation_data import SoilState
from sproutsim.sim.water import WaterBalance
from sproutsim.utils.log import Reporter

r = Reporter()


class Bed:
    """
    A garden bed: one soil water store, the plants placed in it, and the static
    scene objects (trees, structures) that can shade them.

    Positions are bed-local. Trees and structures take part in shadow casting
    only; they are neither grown nor killed.
    """

    def __init__(self,
                 bed_id,
                 capacity_mm,
                 moisture_mm,
                 percolation_mm_per_day=DEFAULT_PERCOLATION_MM,
                 water_use_factor=1.0,
                 ):
        self.bed_id = bed_id
        self.water = WaterBalance(SoilState(capacity_mm, moisture_mm, percolation_mm_per_day),
                                  water_use_factor=water_use_factor)
        self.plants: dict[str, PlantInstance] = {}
        self.static_objects: dict[str, object] = {}

    @property
    def soil(self) -> SoilState:
        return self.water.soil

    def place_plant(self,
                    instance_id: str,
                    species: PlantAttributes,
                    x: float,
                    y: float,
                    planted_at: dt.datetime,
                    height=0.0,
                    canopy_radius=0.0,
                    ) -> PlantInstance:
        self._check_new_id(instance_id)
        plant = PlantInstance(instance_id=instance_id, species=species, x=x, y=y,
                              planted_at=planted_at, height=height, canopy_radius=canopy_radius)
        self.plants[instance_id] = plant
        r.report(f"Placed {species.name} \"{instance_id}\" in bed \"{self.bed_id}\" at ({x}, {y})")
        return plant

    def remove_plant(self, instance_id: str) -> PlantInstance:
        try:
            plant = self.plants.pop(instance_id)
        except KeyError:
            msg = f"No plant \"{instance_id}\" in bed \"{self.bed_id}\""
            r.report(msg, level="ERROR")
            raise KeyError(msg) from None
        r.report(f"Removed plant \"{instance_id}\" from bed \"{self.bed_id}\"")
        return plant

    def add_tree(self, object_id, x, y, height, canopy_radius) -> CanopyObject:
        self._check_new_id(object_id)
        tree = CanopyObject(object_id, x, y, height, canopy_radius, kind="tree")
        self.static_objects[object_id] = tree
        return tree

    def add_structure(self, object_id, x, y, height, width, depth) -> StructureObject:
        self._check_new_id(object_id)
        structure = StructureObject(object_id, x, y, height, width, depth)
        self.static_objects[object_id] = structure
        return structure

    def remove_object(self, object_id):
        return self.static_objects.pop(object_id)

    def irrigate(self, mm):
        moisture = self.water.irrigate(mm)
        r.report(f"Irrigated bed \"{self.bed_id}\" with {mm} mm -> moisture {moisture:.2f} mm")
        return moisture

    def scene_objects(self) -> list:
        """ Plants (at their current size) plus static objects, as shadow-casting scene objects. """
        objects = [CanopyObject(p.instance_id, p.x, p.y, p.height, p.canopy_radius, kind="plant")
                   for p in self.plants.values()]
        objects.extend(self.static_objects.values())
        return objects

    def _check_new_id(self, object_id):
        if object_id in self.plants or object_id in self.static_objects:
            msg = f"Duplicate object id \"{object_id}\" in bed \"{self.bed_id}\""
            r.report(msg, level="ERROR")
            raise ValueError(msg)
