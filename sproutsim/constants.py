# Version tag written into every growth snapshot
MODEL_VERSION = "sproutsim-1"

# Reference evapotranspiration (mm/day) assumed when the weather source has none
FALLBACK_ET0_MM = 4.0

# Soil/root defaults for the comfort band (loam AWC ~150 mm per m of root depth)
DEFAULT_ROOT_DEPTH_M = 0.3
DEFAULT_AWC_MM_PER_M = 150.0

# Crop coefficient used when a species has no kc profile
DEFAULT_KC = 1.0

# Fractions of days-to-maturity separating the initial/mid/late kc stages
KC_INITIAL_END = 0.2
KC_LATE_START = 0.8

# Soil moisture above this fraction of capacity counts as waterlogged when no waterMax is known
WET_CAPACITY_FRACTION = 0.98

# Daily percolation loss (mm/day) when a bed does not specify one
DEFAULT_PERCOLATION_MM = 2.0

# Consecutive violating hours tolerated per stressor, and consecutive bad-sun days
DEFAULT_GRACE_HOURS = {"cold": 0, "heat": 1, "dry": 12, "wet": 12}
DEFAULT_SUN_GRACE_DAYS = 2

# Wall-clock period (ms) between time controller ticks
CLOCK_PERIOD_MS = 200

# Degrees per climatology tile
TILE_STEP = 0.1

# Days ahead of "today" still served by a forecast provider
FORECAST_HORIZON_DAYS = 14

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
