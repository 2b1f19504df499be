###############################################################
#  outputs.py
###############################################################

import datetime as dt
from pathlib import Path
from collections import defaultdict

import numpy as np
import xarray as xr

from sproutsim.sim.simulation_data import GrowthSnapshot
from sproutsim.utils.log import Reporter

r = Reporter()

SNAPSHOT_QUANTITIES = ("sunlight_hours", "shaded_hours", "temp_ok_hours", "height", "canopy_radius")


class SnapshotStore:
    """
    Daily growth snapshots, unique per (bed_id, plant_instance_id, day).

    Writes are upserts: recomputing a day replaces the stored record.
    """

    def __init__(self):
        self._records: dict[tuple, GrowthSnapshot] = {}

    def upsert(self, snapshot: GrowthSnapshot) -> bool:
        """ Store ``snapshot``; returns True if it was new or changed a stored record. """
        previous = self._records.get(snapshot.key)
        self._records[snapshot.key] = snapshot
        return previous != snapshot

    def get(self, bed_id, plant_instance_id, day: dt.date):
        return self._records.get((bed_id, plant_instance_id, day))

    def for_plant(self, bed_id, plant_instance_id) -> list:
        return sorted((s for s in self._records.values()
                       if s.bed_id == bed_id and s.plant_instance_id == plant_instance_id),
                      key=lambda s: s.day)

    def by_bed_day(self) -> dict:
        groups = defaultdict(list)
        for snap in self:
            groups[(snap.bed_id, snap.day)].append(snap)
        return dict(groups)

    def __iter__(self):
        return iter(sorted(self._records.values(), key=lambda s: (s.bed_id, s.day, s.plant_instance_id)))

    def __len__(self):
        return len(self._records)


class OutputManager:
    """ For saving :class:`~sproutsim.sim.simulation_data.GrowthSnapshot` records to NetCDF files. """

    def __init__(self, output_dir):
        self.snapshot_dir = Path(output_dir) / "snapshots"
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def snapshot_filename(bed_id, day: dt.date) -> str:
        return f"{bed_id}_{day.isoformat()}"

    def save_snapshots(self, store: SnapshotStore) -> int:
        """ Write one file per bed and day; re-saving a day overwrites its file. Returns the file count. """
        groups = store.by_bed_day()
        for (bed_id, day), snaps in groups.items():
            data = {name: np.array([getattr(s, name) for s in snaps], dtype=float)
                    for name in SNAPSHOT_QUANTITIES}
            self.save_netcdf(self.snapshot_dir,
                             self.snapshot_filename(bed_id, day),
                             data,
                             plant_ids=[s.plant_instance_id for s in snaps],
                             saved_attrs={"bed_id": bed_id,
                                          "day": day.isoformat(),
                                          "model_version": snaps[0].model_version},
                             )
        r.report(f"Saved {len(groups)} snapshot file(s) to {self.snapshot_dir}")
        return len(groups)

    def save_netcdf(self,
                    directory: Path,
                    filename: str,
                    data: dict,
                    plant_ids: list,
                    saved_attrs: dict | None = None
                    ):
        """ Save dict-like data as a NetCDF file using xarray """
        data_vars = {}
        attrs = {}

        for key, value in data.items():
            # arrays become per-plant variables, scalars become attributes
            if isinstance(value, np.ndarray):
                data_vars[key] = xr.DataArray(value, dims=("plant",))
            else:
                attrs[key] = value

        ds = xr.Dataset(data_vars=data_vars, coords={"plant": np.array(plant_ids, dtype=str)})
        ds.attrs.update(attrs)
        if saved_attrs is not None:
            ds.attrs.update(saved_attrs)

        ds.to_netcdf(directory / (filename + ".nc"), engine="scipy")


def load_snapshots(directory) -> xr.Dataset:
    """
    Read every snapshot file under ``directory`` into one dataset with a
    ``record`` dimension and ``bed_id``, ``plant_instance_id`` and ``day`` variables.
    """
    directory = Path(directory)
    files = sorted(directory.glob("*.nc"))
    if not files:
        msg = f"No snapshot files found in {directory}"
        r.report(msg, level="ERROR")
        raise ValueError(msg)

    columns = defaultdict(list)
    for f in files:
        with xr.open_dataset(f, engine="scipy") as ds:
            n = ds.sizes["plant"]
            columns["bed_id"].extend([ds.attrs["bed_id"]] * n)
            columns["day"].extend([np.datetime64(ds.attrs["day"])] * n)
            columns["plant_instance_id"].extend(str(p) for p in ds["plant"].values)
            for name in SNAPSHOT_QUANTITIES:
                columns[name].extend(ds[name].values.tolist())

    return xr.Dataset({
        name: ("record", np.array(values)) for name, values in columns.items()
    })
