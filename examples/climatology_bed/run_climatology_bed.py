"""
Example script driving a bed from an interactive clock, with a two-week
forecast followed by climatological normals.

The normals file is generated here from a simple seasonal/diurnal model so the
example is self-contained; in practice it would be built from reanalysis data
with `sproutsim.sim.weather.save_climatology`.
"""


#------------------------------------------------------------------------------
# Import necessary modules
#------------------------------------------------------------------------------

import asyncio
import datetime as dt
import numpy as np

from sproutsim import (
    PlantRegistry, Bed, GardenSimulation, TimeController, RunMode,
    StaticWeatherProvider, ClimatologyProvider, HorizonWeatherProvider, summarize_hourly,
)
from sproutsim.sim.weather import save_climatology


lat, lon = 45.07, 7.69
today = dt.date(2024, 6, 1)


#------------------------------------------------------------------------------
# Hourly normals (366 days x 24 hours) for the garden's tile
#------------------------------------------------------------------------------

doy = np.arange(1, 367)[:, None]
hour = np.arange(24)[None, :]
seasonal = 12 - 10*np.cos(2*np.pi*(doy - 15)/366)
normals = {
    "temperature_2m": seasonal + 6*np.sin(2*np.pi*(hour - 9)/24),
    "precipitation": np.full((366, 24), 2.5/24),
    "et0_fao_evapotranspiration": np.clip(np.sin(np.pi*(hour - 6)/14), 0, None)*0.3*np.ones((366, 1)),
}
save_climatology("climatology", lat, lon, normals)


#------------------------------------------------------------------------------
# Forecast for the first days, normals afterwards
#------------------------------------------------------------------------------

forecast = StaticWeatherProvider([
    summarize_hourly((today + dt.timedelta(days=i)).isoformat(),
                     18 + 6*np.sin(2*np.pi*(np.arange(24) - 9)/24),
                     precip_mm=np.full(24, 3.0/24))
    for i in range(3)
])
provider = HorizonWeatherProvider(near=forecast, far=ClimatologyProvider("climatology"),
                                  today=today, horizon_days=2)


#------------------------------------------------------------------------------
# Bed and simulation
#------------------------------------------------------------------------------

species = PlantRegistry.from_directory(".")
bed = Bed("patio", capacity_mm=80, moisture_mm=35)
bed.place_plant("tomato-1", species.get("tomato"), x=0., y=0.,
                planted_at=dt.datetime.combine(today, dt.time(0)))
bed.add_tree("walnut", x=-150., y=0., height=600., canopy_radius=250.)


def report_death(plant_id, info):
    print(f"{plant_id} died on {info.died_at:%Y-%m-%d %H:%M}: {info.reason.value}")


sim = GardenSimulation(lat, lon, [bed], provider, on_death=report_death)


#------------------------------------------------------------------------------
# Play the clock forward hour by hour for a few seconds of wall time
#------------------------------------------------------------------------------

async def play(seconds):
    clock = TimeController(dt.datetime.combine(today, dt.time(0)), period_ms=5)
    sim.attach_clock(clock)
    clock.set_mode(RunMode.FWD_1H)
    await asyncio.sleep(seconds)
    sim.close()
    return clock.instant


end = asyncio.run(play(3.0))
stats = sim.live_stats()["patio"]["tomato-1"]
print(f"Stopped at {end:%Y-%m-%d %H:%M}: height {stats.height:.1f}, phase {stats.phase}")
