"""Internal constants shared across the library."""

DEFAULT_BROKER_URL = "ws://localhost:8080/ws"
DEFAULT_API_BASE_URL = "http://localhost:8080/api"
USER_AGENT = "simsync/1"

# ------------------------------------------------------------------
# Wire formats
# ------------------------------------------------------------------

JSON_CONTENT_TYPE = "application/json"

# ------------------------------------------------------------------
# Map grid used by the dispatch simulation (inclusive bounds)
# ------------------------------------------------------------------

MAP_X_MAX = 70
MAP_Y_MAX = 50

# ------------------------------------------------------------------
# Blockage schedule files
# ------------------------------------------------------------------

BLOCKAGE_FILE_SUFFIX = ".bloqueadas"
COMMENT_MARKER = "#"
MAX_DAY_OFFSET = 99
