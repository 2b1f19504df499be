"""
Simple example script to run one garden bed with SproutSim over a month of
scripted summer weather.
"""


#------------------------------------------------------------------------------
# Import necessary modules
#------------------------------------------------------------------------------

import datetime as dt
import numpy as np

from sproutsim import PlantRegistry, Bed, GardenSimulation, StaticWeatherProvider, summarize_hourly


#------------------------------------------------------------------------------
# Scripted weather: a daily temperature cycle with light daily rain
#------------------------------------------------------------------------------

start = dt.datetime(2024, 5, 15, 0, 0)
n_days = 30

hours = np.arange(24)
reports = []
for i in range(n_days + 1):
    day = start.date() + dt.timedelta(days=i)
    temps = 17 + 7*np.sin(2*np.pi*(hours - 9)/24)  # min near 03:00, max near 15:00
    et0 = np.clip(np.sin(np.pi*(hours - 6)/14), 0, None)
    et0 *= 3.0/et0.sum()                            # 3 mm per day
    reports.append(summarize_hourly(day.isoformat(), temps,
                                    precip_mm=np.full(24, 3.5/24),
                                    et0_mm=et0))

provider = StaticWeatherProvider(reports)


#------------------------------------------------------------------------------
# Plant a bed: a tomato and a basil next to a garden shed
#------------------------------------------------------------------------------

species = PlantRegistry.from_directory(".")

bed = Bed("raised_bed", capacity_mm=100, moisture_mm=30, percolation_mm_per_day=2)
bed.place_plant("tomato-1", species.get("tomato"), x=0., y=0., planted_at=start)
bed.place_plant("basil-1", species.get("basil"), x=30., y=0., planted_at=start)
bed.add_structure("shed", x=-80., y=0., height=200., width=60., depth=40.)


#------------------------------------------------------------------------------
# Run SproutSim
#------------------------------------------------------------------------------

sim = GardenSimulation(lat=45.07, lon=7.69, beds=[bed], provider=provider)

# 15-minute steps; half of ET0 is taken as the bed's daily water demand
snapshots = sim.run_simulation(start, n_days, mode="play15m",
                               water_use_factor=0.5,
                               output_dir="output")

for plant_id, stats in sim.live_stats()["raised_bed"].items():
    print(f"{plant_id}: height {stats.height:.1f}, canopy {stats.canopy:.1f}, "
          f"phase {stats.phase}, status {stats.growth_status}")
