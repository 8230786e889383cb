"""Internal Netatmo API package.

This package centralizes Netatmo-specific behavior so the bridge modules can
stay small and focused.

The package provides:
    - An async API client with OAuth2 token handling and a one-shot retry on
      expired tokens
    - A typed exception taxonomy
    - Presence-based normalizers that flatten station, module and air-quality
      payloads into publishable records
"""

from __future__ import annotations

# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
from .client import API_BASE, AUTH_SCOPE, PATH_AUTH, NetatmoClient
from .exceptions import (
    NetatmoConfigurationError,
    NetatmoError,
    NetatmoInvalidTokenError,
    NetatmoMissingAccessTokenError,
    NetatmoMissingClientCredentialsError,
    NetatmoMissingHomeIdError,
    NetatmoMissingMeasureParamsError,
    NetatmoMissingRefreshTokenError,
    NetatmoMissingUserCredentialsError,
    NetatmoParseError,
    NetatmoPreconditionError,
    NetatmoRequestFailedError,
)
from .payloads import (
    MEASURE_FIELDS,
    aircare_record,
    module_record,
    process_measure,
    station_modules,
    station_record,
)

__all__ = [
    "API_BASE",
    "AUTH_SCOPE",
    "MEASURE_FIELDS",
    "NetatmoClient",
    "NetatmoConfigurationError",
    "NetatmoError",
    "NetatmoInvalidTokenError",
    "NetatmoMissingAccessTokenError",
    "NetatmoMissingClientCredentialsError",
    "NetatmoMissingHomeIdError",
    "NetatmoMissingMeasureParamsError",
    "NetatmoMissingRefreshTokenError",
    "NetatmoMissingUserCredentialsError",
    "NetatmoParseError",
    "NetatmoPreconditionError",
    "NetatmoRequestFailedError",
    "PATH_AUTH",
    "aircare_record",
    "module_record",
    "process_measure",
    "station_modules",
    "station_record",
]
