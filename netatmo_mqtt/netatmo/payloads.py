"""Payload parsing and normalization.

The internal API package provides helpers that flatten the nested vendor
payloads into one record per physical device:

- `process_measure`: `dashboard_data` -> renamed measurement fields
- `station_record`: main weather station (wifi connected)
- `module_record`: radio module attached to a station
- `aircare_record`: standalone air-quality monitor

Measurement fields are copied only when the source key is present. A value of
`0` or `False` is copied; a missing key never produces an output key, which
keeps the vendor's "not applicable for this device" signal intact.

This module intentionally avoids MQTT imports.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final, cast

from .util import online_flag

# Ordered (vendor key, published key) pairs. Nothing outside this table is
# copied, including lowercase aliases such as `co2`.
MEASURE_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    # Temperature
    ("Temperature", "temperature"),
    ("temp_trend", "temptrend"),
    # Pressure
    ("Pressure", "pressure"),
    ("AbsolutePressure", "pressureabs"),
    ("pressure_trend", "pressuretrend"),
    # Humidity / air
    ("Humidity", "humidity"),
    ("CO2", "co2"),
    ("Noise", "noise"),
    # Rain
    ("Rain", "rain"),
    ("sum_rain_1", "sumrain1"),
    ("sum_rain_24", "sumrain24"),
    # Wind
    ("WindStrength", "windstrength"),
    ("WindAngle", "windangle"),
    ("GustStrength", "guststrength"),
    ("GustAngle", "gustangle"),
    # Air quality index
    ("health_idx", "healthidx"),
    # Daily extremes
    ("min_temp", "mintemp"),
    ("max_temp", "maxtemp"),
    ("date_min_temp", "mintemputc"),
    ("date_max_temp", "maxtemputc"),
    ("max_wind_str", "windstrenghtmax"),
    ("max_wind_angle", "windanglemax"),
    ("date_max_wind_str", "windmaxutc"),
    # Measurement timestamp
    ("time_utc", "timeutc"),
)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return cast(Mapping[str, Any], value)
    return {}


def process_measure(measure: Mapping[str, Any] | None) -> dict[str, Any]:
    """Flatten a `dashboard_data` object.

    Args:
        measure: Raw `dashboard_data` mapping. Unreachable devices are reported
            without it, so `None` (or any non-mapping) yields an empty record.

    Returns:
        New dict holding only the renamed fields whose source key was present.
    """
    source = _as_mapping(measure)
    data: dict[str, Any] = {}
    for src_key, dest_key in MEASURE_FIELDS:
        if src_key in source:
            data[dest_key] = source[src_key]
    return data


def station_modules(station: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """Return the module payloads attached to a station.

    Args:
        station: Raw station payload.

    Returns:
        Module mappings in vendor order; non-mapping entries are skipped and a
        missing or malformed `modules` key yields an empty list.
    """
    modules_any: Any = station.get("modules")
    if not isinstance(modules_any, list):
        return []
    return [
        cast(Mapping[str, Any], m)
        for m in cast(list[Any], modules_any)
        if isinstance(m, Mapping)
    ]


def station_record(station: Mapping[str, Any]) -> dict[str, Any]:
    """Build the record published for a main weather station."""
    record = process_measure(station.get("dashboard_data"))
    record["id"] = station.get("_id")
    record["name"] = station.get("station_name")
    record["type"] = station.get("type")
    record["home"] = station.get("home_name")
    record["online"] = online_flag(station.get("reachable"))
    record["wifistatus"] = station.get("wifi_status")
    return record


def module_record(
    station: Mapping[str, Any], module: Mapping[str, Any]
) -> dict[str, Any]:
    """Build the record published for a station module.

    The module inherits the home name of its station; radio link quality and
    battery level replace the wifi status.
    """
    record = process_measure(module.get("dashboard_data"))
    record["id"] = module.get("_id")
    record["name"] = module.get("module_name")
    record["type"] = module.get("type")
    record["home"] = station.get("home_name")
    record["online"] = online_flag(module.get("reachable"))
    record["rfstatus"] = module.get("rf_status")
    record["battery"] = module.get("battery_percent")
    return record


def aircare_record(aircare: Mapping[str, Any]) -> dict[str, Any]:
    """Build the record published for an air-quality monitor."""
    record = process_measure(aircare.get("dashboard_data"))
    record["id"] = aircare.get("_id")
    record["name"] = aircare.get("station_name")
    record["type"] = aircare.get("type")
    record["module"] = aircare.get("module_name")
    record["online"] = online_flag(aircare.get("reachable"))
    record["wifistatus"] = aircare.get("wifi_status")
    return record
