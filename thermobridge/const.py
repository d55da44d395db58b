"""Constants for thermobridge.

This module contains the constants used throughout the package,
including vendor API endpoints, configuration keys, and defaults.
"""

SKYPORT_BASE_URL = "https://api.daikinskyport.com"
AWAIR_BASE_URL = "https://developer-apis.awair.is/v1/users/self/devices"
AWAIR_READINGS_PATH = "air-data/15-min-avg"
AWAIR_READINGS_LIMIT = 4
AWAIR_TEMPERATURE_COMPONENT = "temp"

# Refresh the access token when it has less than this many seconds left
TOKEN_REFRESH_MARGIN = 60

CONF_EMAIL = "email"
CONF_PASSWORD = "password"
CONF_AWAIR_TOKEN = "awair_token"
CONF_THERMOSTAT_DEVICE_ID = "thermostat_device_id"
CONF_SENSOR_DEVICE_ID = "sensor_device_id"
CONF_SENSOR_DEVICE_TYPE = "sensor_device_type"
CONF_DESIRED_TEMPERATURE = "desired_temperature"
CONF_TOLERANCE = "tolerance"
CONF_POLL_INTERVAL = "poll_interval_seconds"
CONF_MIN_SETPOINT = "min_setpoint"
CONF_MAX_SETPOINT = "max_setpoint"
CONF_STEP_SIZE = "step_size"
CONF_ADJUSTMENT_POLICY = "adjustment_policy"
CONF_PROPORTIONAL_GAIN = "proportional_gain"
CONF_CONTROL_START = "control_start"
CONF_CONTROL_END = "control_end"
CONF_OVERRIDE_DURATION = "override_duration_minutes"
CONF_MAX_READING_AGE = "max_reading_age_seconds"
CONF_REQUEST_TIMEOUT = "request_timeout_seconds"
CONF_RETRY_ATTEMPTS = "retry_attempts"
CONF_RETRY_BACKOFF_FACTOR = "retry_backoff_factor"
CONF_RETRY_MAX_BACKOFF = "retry_max_backoff_seconds"
CONF_TICK_TIMEOUT = "tick_timeout_seconds"

DEFAULT_SENSOR_DEVICE_TYPE = "awair"
DEFAULT_TOLERANCE = 0.5
DEFAULT_POLL_INTERVAL = 300
DEFAULT_MIN_SETPOINT = 15.0
DEFAULT_MAX_SETPOINT = 30.0
DEFAULT_STEP_SIZE = 0.5
DEFAULT_PROPORTIONAL_GAIN = 1.0
DEFAULT_OVERRIDE_DURATION = 60
DEFAULT_MAX_READING_AGE = 1800
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_FACTOR = 0.5
DEFAULT_RETRY_MAX_BACKOFF = 10.0

POLICY_FIXED = "fixed"
POLICY_PROPORTIONAL = "proportional"
POLICY_OFFSET = "offset"

MODE_OFF = "off"
MODE_HEAT = "heat"
MODE_COOL = "cool"
MODE_AUTO = "auto"
MODE_UNSUPPORTED = "unsupported"

SETPOINT_HEAT = "heat"
SETPOINT_COOL = "cool"

# Skyport "mode" field; emergency heat drives the heat setpoint
SKYPORT_MODE_MAP = {
    0: MODE_OFF,
    1: MODE_HEAT,
    2: MODE_COOL,
    3: MODE_AUTO,
    4: MODE_HEAT,
}
SKYPORT_SETPOINT_FIELDS = {
    SETPOINT_HEAT: "hspHome",
    SETPOINT_COOL: "cspHome",
}
