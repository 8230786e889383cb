"""Constants for the Netatmo to MQTT bridge.

This module centralizes configuration keys, defaults, and topic layout.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Final

DOMAIN: Final = "netatmo_mqtt"

# Use a stable logger name so verbosity can be tuned for the whole bridge.
LOGGER_NAME: Final = DOMAIN

DEFAULT_MQTT_URL: Final = "mqtt://127.0.0.1"
DEFAULT_MQTT_TOPIC: Final = "netatmo"
DEFAULT_LOG_VERBOSITY: Final = "warn"

DEFAULT_SCAN_INTERVAL: Final = timedelta(seconds=60)
DEFAULT_TIMEOUT_SECONDS: Final[int] = 10
MQTT_CONNECT_TIMEOUT_SECONDS: Final[int] = 5

# Event name passed to the publish sink for every device/module record.
FRAME_EVENT: Final = "frame"

# Retained availability topic suffix (`<prefix>/connected` = "1"/"0").
TOPIC_CONNECTED: Final = "connected"

LOG_VERBOSITY_LEVELS: Final[dict[str, str]] = {
    "error": "ERROR",
    "warn": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
}
