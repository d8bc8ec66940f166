"""Configuration constants.

Values here are not user-configurable. For configurable values, see models.py.
"""

# =============================================================================
# Home directory layout
# =============================================================================

DEFAULT_HOME = "~/.similo"
HOME_ENV_VAR = "SIMILO_HOME"

CONFIG_FILE = "config.yaml"
DB_FILE = "index.db"
PID_FILE = "similo.pid"
PORT_FILE = "similo.port"
LOG_DIR = "logs"
LOG_FILE = "similo.log"

# =============================================================================
# Request limits
# =============================================================================

SEARCH_MAX_LIMIT = 100
"""Maximum results for a single search query."""

# =============================================================================
# Protocol/Validation Constants
# =============================================================================

PORT_MIN = 0
PORT_MAX = 65535
"""Valid port range."""
