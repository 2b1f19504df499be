"""
Coordinate tiling used to key cached climatological normals.

A tile is a (lat, lon) pair snapped to a regular grid of ``TILE_STEP`` degrees,
so nearby gardens share one set of normals.
"""

from sproutsim.constants import TILE_STEP


def clamp_lat(x):
    return max(-90.0, min(90.0, x))


def clamp_lon(x):
    return max(-180.0, min(180.0, x))


def snap_coord(x, step=TILE_STEP):
    # round to the nearest multiple of step; the second round strips float noise
    return round(round(x / step) * step, 6)


def snap_tile(lat, lon, step=TILE_STEP):
    """ Return clamped and snapped (lat, lon). """
    return snap_coord(clamp_lat(lat), step), snap_coord(clamp_lon(lon), step)


def tile_key(lat, lon, step=TILE_STEP):
    lat_rounded, lon_rounded = snap_tile(lat, lon, step)
    return f"{lat_rounded:.3f},{lon_rounded:.3f}"
