"""Tests for conversion and request-encoding helpers."""

from __future__ import annotations

import pytest

from netatmo_mqtt.netatmo.util import encode_params, error_to_text, to_int


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (10800, 10800),
        (10800.0, 10800),
        (" 3600 ", 3600),
        (True, None),
        (1.5, None),
        ("3600s", None),
        (None, None),
    ],
)
def test_to_int(value, expected):
    assert to_int(value) == expected


def test_encode_params_follows_api_conventions():
    assert encode_params(
        {
            "device_id": "70:ee:50:00:00:01",
            "module_id": None,
            "gateway_types": [],
            "type": ["Temperature", "Humidity"],
            "optimize": True,
            "real_time": False,
            "limit": 5,
            "filter": {},
        }
    ) == {
        "device_id": "70:ee:50:00:00:01",
        "type": "Temperature,Humidity",
        "optimize": "true",
        "real_time": "false",
        "limit": "5",
    }


def test_encode_params_without_params():
    assert encode_params(None) == {}


def test_error_to_text_is_compact_json():
    assert error_to_text({"code": 99}) == '{"code":99}'
    assert error_to_text("invalid_grant") == '"invalid_grant"'
