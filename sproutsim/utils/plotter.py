"""
Class for plotting plant growth histories from SproutSim snapshot outputs
"""

from typing import Optional, Any
import numpy as np
from pathlib import Path
from tqdm import tqdm
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sproutsim.sim.outputs import load_snapshots


class GrowthPlotter:
    """
    One figure per bed with the daily history of ``quantity`` for every plant.

    Parameters
    ----------
    snapshot_dir : str or Path
        Directory holding the NetCDF snapshot files of a run.
    quantity : str
        Any snapshot quantity, e.g. ``"height"``, ``"canopy_radius"`` or ``"sunlight_hours"``.
    out_dir : str or Path, optional
        Where figures are written. Defaults to ``snapshot_dir / "figures"``.
    plot_specs : dict, optional
        Overrides of ``figsize``, ``fontsize`` and ``output_dpi``.
    """

    def __init__(self,
                 snapshot_dir,
                 quantity="height",
                 out_dir=None,
                 plot_specs: Optional[dict[str, Any]] = None,
                 ):
        self.snapshot_dir = Path(snapshot_dir)
        self.quantity = quantity
        self.out_dir = Path(out_dir) if out_dir is not None else self.snapshot_dir / "figures"

        defaults = {
            'figsize'   : (8, 4),
            'fontsize'  : 11,
            'output_dpi': 100,
        }
        self.plot_specs = {**defaults, **(plot_specs or {})}  # merge provided custom values with default values

        self.ds = load_snapshots(self.snapshot_dir)
        if self.quantity not in self.ds:
            raise ValueError(f"Unknown snapshot quantity \"{self.quantity}\"")

    def run(self) -> list:
        """ Write one PNG per bed; returns the written paths. """
        paths = []
        for bed_id in tqdm(np.unique(self.ds["bed_id"].values)):
            paths.append(self.plot_bed(str(bed_id)))
        return paths

    def plot_bed(self, bed_id) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        in_bed = self.ds["bed_id"].values == bed_id
        plants = np.unique(self.ds["plant_instance_id"].values[in_bed])

        fig, ax = plt.subplots(figsize=self.plot_specs["figsize"])
        for plant_id in plants:
            sel = in_bed & (self.ds["plant_instance_id"].values == plant_id)
            order = np.argsort(self.ds["day"].values[sel])
            ax.plot(self.ds["day"].values[sel][order],
                    self.ds[self.quantity].values[sel][order],
                    marker="o", markersize=3, label=str(plant_id))

        ax.set_title(f"Bed {bed_id}: {self.quantity}", fontsize=self.plot_specs["fontsize"])
        ax.set_xlabel("Day", fontsize=self.plot_specs["fontsize"])
        ax.set_ylabel(self.quantity.replace("_", " "), fontsize=self.plot_specs["fontsize"])
        ax.legend(fontsize=self.plot_specs["fontsize"] - 2)
        fig.autofmt_xdate()

        fname = self.out_dir / f"{bed_id}_{self.quantity}.png"
        fig.savefig(fname, dpi=self.plot_specs["output_dpi"], bbox_inches="tight")
        plt.close(fig)
        return fname
