"""
Plot the height and sunlight histories written by `run_simple_bed.py`.
"""

from sproutsim.utils.plotter import GrowthPlotter

for quantity in ("height", "sunlight_hours"):
    plotter = GrowthPlotter("output/snapshots", quantity=quantity, out_dir="figures")
    plotter.run()
