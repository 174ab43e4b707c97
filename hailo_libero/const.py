from __future__ import annotations

from typing import Final

# Device defaults
DEFAULT_PORT: Final = 81
DEFAULT_PASSWORD: Final = "hailo"  # factory PIN

# Protocol profiles
PROFILE_PIN_FORM: Final = "pin_form"
PROFILE_JSON_PASSWORD: Final = "json_password"
DEFAULT_PROFILE: Final = PROFILE_PIN_FORM

# HTTP paths (reverse engineered; overridable per config)
ROOT_PATH: Final = "/"
LOGIN_PATH: Final = "/login"
PUSH_PATH: Final = "/push"
SETTINGS_PATH: Final = "/settings"
RESTART_PATH: Final = "/restart"
# json_password firmware
STATUS_PATH: Final = "/status"
CONFIG_PATH: Final = "/config"
INFO_PATH: Final = "/info"
OPEN_PATH: Final = "/open"

# Plain-text acknowledgment of the actuation endpoint
PUSH_ACK: Final = "OK"

# Timeouts (seconds)
PROBE_TIMEOUT: Final = 5
REQUEST_TIMEOUT: Final = 10

# Polling
DEFAULT_POLL_INTERVAL: Final = 30  # seconds
MIN_POLL_INTERVAL: Final = 5  # seconds
MAX_POLL_INTERVAL: Final = 300  # seconds
RECONNECT_DELAY: Final = 60  # seconds, fixed

# Form field names of the writable settings and their accepted ranges
FIELD_LED: Final = "led"
FIELD_FORCE: Final = "pwr"
FIELD_DISTANCE: Final = "dist"

SETTING_FIELDS: Final = {
    "led_brightness": FIELD_LED,
    "ejection_force": FIELD_FORCE,
    "sensor_distance": FIELD_DISTANCE,
}
SETTING_RANGES: Final = {
    FIELD_LED: (1, 10),
    FIELD_FORCE: (1, 10),
    FIELD_DISTANCE: (31, 100),  # mm
}

# Inputs on the settings page that carry "1"/"0" instead of a real boolean
BOOLEAN_FIELDS: Final = frozenset({"auto"})

USER_AGENT: Final = "hailo-libero/1.0 (python)"
