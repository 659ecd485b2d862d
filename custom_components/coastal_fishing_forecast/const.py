"""Constants for Coastal Fishing Forecast."""

# Integration identity
DOMAIN = "coastal_fishing_forecast"
DEFAULT_NAME = "Coastal Fishing Forecast"

# Update interval (seconds) default used by coordinator
DEFAULT_UPDATE_INTERVAL = 30 * 60  # seconds

# Open-Meteo endpoints
OM_BASE = "https://api.open-meteo.com/v1/forecast"
OM_MARINE_BASE = "https://marine-api.open-meteo.com/v1/marine"

FETCH_CACHE_TTL = 600  # seconds for shared in-memory Open-Meteo fetch cache
DEFAULT_FORECAST_DAYS = 3

# ----- Config keys used by the flow and entry options -----
CONF_NAME = "name"
CONF_LATITUDE = "latitude"
CONF_LONGITUDE = "longitude"
CONF_SPECIES = "species"  # list of species ids scored for this entry
CONF_ALGORITHM_VERSION = "algorithm_version"
CONF_FORECAST_DAYS = "forecast_days"

ALGORITHM_VERSION_V1 = "v1"
ALGORITHM_VERSION_V2 = "v2"

# ----- Scoring engine -----
NEUTRAL_SCORE = 5.0
SAFETY_SCORE_CEILING = 3.0
IN_SEASON_THRESHOLD = 3.0
WEIGHT_SUM_TOLERANCE = 1e-6

# Clamp ranges applied to every incoming sample field (min, max)
PHYSICAL_BOUNDS = {
    "temperature": (-40.0, 50.0),  # °C
    "wind_speed": (0.0, 250.0),  # km/h
    "wind_gust": (0.0, 300.0),  # km/h
    "wind_direction": (0.0, 360.0),  # degrees
    "precipitation": (0.0, 500.0),  # mm
    "cloud_cover": (0.0, 100.0),  # %
    "pressure": (870.0, 1085.0),  # hPa
    "lightning_potential": (0.0, 10000.0),  # J/kg (CAPE)
    "wave_height": (0.0, 30.0),  # m
    "swell_period": (0.0, 30.0),  # s
    "visibility": (0.0, 100.0),  # km
}

# Hard sea-state ceilings used when a species does not override them
DEFAULT_MAX_WIND_KT = 25.0
DEFAULT_MAX_GUST_KT = 35.0
DEFAULT_MAX_WAVE_M = 2.0

# Gear retrieval limits (crab / prawn traps)
RETRIEVAL_MAX_WIND_KT = 20.0
RETRIEVAL_MAX_WAVE_M = 2.0
RETRIEVAL_MAX_CURRENT_KT = 3.0
SLACK_CURRENT_KT = 0.5
TRAP_ROLL_CURRENT_KT = 2.0

LIGHTNING_UNSAFE_J_KG = 1500.0
EXTREME_CURRENT_KT = 4.5
COLD_WATER_WARNING_C = 6.0

# Solunar approximation when no ephemeris events are supplied (Salish Sea)
DEFAULT_REFERENCE_LONGITUDE = -123.7
SOLUNAR_MAJOR_WINDOW_MIN = 60.0
SOLUNAR_MINOR_WINDOW_MIN = 30.0

# Pressure trend window
PRESSURE_TREND_HOURS = 3.0
PRESSURE_MIN_HISTORY_HOURS = 1.0
