import os

DATABASE_URL = os.environ.get("GYMTRACKER_DATABASE_URL", "sqlite:///gymtracker.db")
LOG_LEVEL = os.environ.get("GYMTRACKER_LOG_LEVEL", "INFO")

# Rest timer presets in seconds
REST_PRESETS = (180, 240, 300, 360)
DEFAULT_REST_SEC = 180
# Used when a rest clock is started with no usable target
FALLBACK_REST_SEC = 90

TICK_INTERVAL_SEC = 1.0

DEFAULT_PROFILE_NAME = "Athlet"
DEFAULT_SPLIT_EMOJI = "🏋️"

# Upper bound on set rows per exercise in a live session
MAX_SETS = 50
