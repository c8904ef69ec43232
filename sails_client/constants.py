# =============================================================================
# Sails Python Client -- Protocol Constants
# =============================================================================
#
# SDK metadata values match what Sails servers expect in the handshake query.
# =============================================================================

import sys

# -- SDK metadata --------------------------------------------------------------

SDK_VERSION = "0.10.0"
SDK_PLATFORM = sys.platform
SDK_LANGUAGE = "python"

PARAM_SDK_VERSION = "__sails_io_sdk_version"
PARAM_SDK_PLATFORM = "__sails_io_sdk_platform"
PARAM_SDK_LANGUAGE = "__sails_io_sdk_language"

SDK_VERSION_STRING = (
    f"{PARAM_SDK_VERSION}={SDK_VERSION}"
    f"&{PARAM_SDK_PLATFORM}={SDK_PLATFORM}"
    f"&{PARAM_SDK_LANGUAGE}={SDK_LANGUAGE}"
)

# -- Transport events ----------------------------------------------------------

EVENT_CONNECT = "connect"
EVENT_DISCONNECT = "disconnect"
EVENT_ERROR = "error"
EVENT_ACK = "ack"

# -- Defaults ------------------------------------------------------------------

DEFAULT_URL = "ws://localhost:1337/socket"
DEFAULT_ENVIRONMENT = "production"

# -- Timing (seconds) ----------------------------------------------------------

CONNECTION_TIMEOUT = 10.0
RECONNECT_BASE_DELAY = 1.0
RECONNECT_MAX_DELAY = 30.0
RECONNECT_MAX_ATTEMPTS = -1  # -1 = infinite
RECONNECT_FACTOR = 1.5
RECONNECT_ABSOLUTE_CAP = 300.0  # 5 minutes

# -- Messages ------------------------------------------------------------------

MAX_MESSAGE_SIZE = 1_048_576  # 1 MB

# -- Wire prefixes -------------------------------------------------------------

PREFIX_MSGPACK = b"M:"

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
WS_CLOSE_GOING_AWAY = 1001
WS_CLOSE_POLICY_VIOLATION = 1008
WS_CLOSE_AUTH_FAILED = 4401
WS_CLOSE_AUTH_EXPIRED = 4403

# -- HTTP handshake statuses treated as authorization failures ----------------

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
