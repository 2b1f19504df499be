###############################################################
#  shadow.py
###############################################################

import math
from typing import Union, Optional
from dataclasses import dataclass

import numpy as np

from sproutsim.sim.simulation_data import SunDirection


@dataclass(frozen=True)
class CanopyObject:
    """ Plant or tree casting a circular-footprint shadow. ``kind`` is ``"plant"`` or ``"tree"``. """

    object_id: str
    x: float
    y: float
    height: float
    canopy_radius: float
    kind: str = "plant"


@dataclass(frozen=True)
class StructureObject:
    """ Structure with a rectangular (width x depth) footprint. """

    object_id: str
    x: float
    y: float
    height: float
    width: float
    depth: float


SceneObject = Union[CanopyObject, StructureObject]


@dataclass(frozen=True)
class ShadowVector:
    """
    Shadow of one object for one sun direction.

    ``footprint`` is ``"capsule"`` (axis from origin to end, half-width ``band``)
    or ``"rect"`` (axis-aligned ``bbox`` = (xmin, ymin, xmax, ymax)).
    """

    object_id: str
    origin_x: float
    origin_y: float
    end_x: float
    end_y: float
    length: float
    footprint: str
    band: float = 0.0
    bbox: Optional[tuple] = None


@dataclass(frozen=True)
class ShadowData:
    vectors: tuple = ()
    shaded_ids: frozenset = frozenset()


def shadow_direction(azimuth_deg: float):
    """ Unit vector of the shadow axis in screen coordinates. """
    az = math.radians(azimuth_deg)
    return math.cos(az), math.sin(az)


def shadow_vector(obj: SceneObject, ux: float, uy: float, tan_elevation: float) -> ShadowVector:
    if isinstance(obj, StructureObject):
        length = max(0.0, obj.height) / tan_elevation
        end_x, end_y = obj.x + ux*length, obj.y + uy*length
        half_w, half_d = obj.width / 2, obj.depth / 2
        bbox = (min(obj.x, end_x) - half_w, min(obj.y, end_y) - half_d,
                max(obj.x, end_x) + half_w, max(obj.y, end_y) + half_d)
        return ShadowVector(obj.object_id, obj.x, obj.y, end_x, end_y, length, "rect", bbox=bbox)

    length = max(0.0, obj.height) / tan_elevation + max(0.0, obj.canopy_radius)
    end_x, end_y = obj.x + ux*length, obj.y + uy*length
    return ShadowVector(obj.object_id, obj.x, obj.y, end_x, end_y, length, "capsule",
                        band=max(0.0, obj.canopy_radius))


def compute_shadows(objects, sun: Optional[SunDirection]) -> ShadowData:
    """
    Shadow geometry and shaded set for all scene objects.

    An object A is shaded by the shadow of B (A != B) when, with ``along`` and
    ``perp`` the components of ``A.pos - B.pos`` on and across the shadow axis,
    ``0 < along < length`` and ``perp < A.canopy_radius`` (capsule), or when A's
    position lies inside B's padded rectangle (structure). Structures have no
    canopy radius and are never shaded by a capsule. Shading is boolean.
    At night (elevation <= 0 or no sun) the result is empty.
    """
    objects = list(objects)
    if sun is None or sun.elevation_deg <= 0 or not objects:
        return ShadowData()

    ux, uy = shadow_direction(sun.azimuth_deg)
    tan_elevation = math.tan(math.radians(sun.elevation_deg))

    vectors = tuple(shadow_vector(obj, ux, uy, tan_elevation) for obj in objects)

    ids = np.array([obj.object_id for obj in objects], dtype=object)
    pos = np.array([[obj.x, obj.y] for obj in objects], dtype=float)
    radius = np.array([max(0.0, getattr(obj, "canopy_radius", 0.0)) for obj in objects], dtype=float)
    shaded = np.zeros(len(objects), dtype=bool)

    for i, vec in enumerate(vectors):
        if vec.footprint == "rect":
            xmin, ymin, xmax, ymax = vec.bbox
            hit = ((pos[:, 0] >= xmin) & (pos[:, 0] <= xmax)
                   & (pos[:, 1] >= ymin) & (pos[:, 1] <= ymax))
        else:
            dx = pos[:, 0] - vec.origin_x
            dy = pos[:, 1] - vec.origin_y
            along = dx*ux + dy*uy
            perp = np.abs(dx*uy - dy*ux)
            hit = (along > 0) & (along < vec.length) & (perp < radius)
        hit[i] = False
        shaded |= hit

    return ShadowData(vectors=vectors, shaded_ids=frozenset(ids[shaded].tolist()))
