"""Tests for payload normalization."""

from __future__ import annotations

import pytest

from netatmo_mqtt.netatmo.payloads import (
    MEASURE_FIELDS,
    aircare_record,
    module_record,
    process_measure,
    station_modules,
    station_record,
)


def test_process_measure_renames_every_known_field():
    measure = {
        "Temperature": 1,
        "temp_trend": 2,
        "Pressure": 3,
        "AbsolutePressure": 4,
        "pressure_trend": 5,
        "Humidity": 6,
        "CO2": 7,
        "Noise": 8,
        "Rain": 9,
        "sum_rain_1": 10,
        "sum_rain_24": 11,
        "WindStrength": 12,
        "WindAngle": 13,
        "GustStrength": 14,
        "GustAngle": 15,
        "health_idx": 16,
        "min_temp": 17,
        "max_temp": 18,
        "date_min_temp": 19,
        "date_max_temp": 20,
        "max_wind_str": 21,
        "max_wind_angle": 22,
        "date_max_wind_str": 23,
        "time_utc": 24,
    }

    assert process_measure(measure) == {
        "temperature": 1,
        "temptrend": 2,
        "pressure": 3,
        "pressureabs": 4,
        "pressuretrend": 5,
        "humidity": 6,
        "co2": 7,
        "noise": 8,
        "rain": 9,
        "sumrain1": 10,
        "sumrain24": 11,
        "windstrength": 12,
        "windangle": 13,
        "guststrength": 14,
        "gustangle": 15,
        "healthidx": 16,
        "mintemp": 17,
        "maxtemp": 18,
        "mintemputc": 19,
        "maxtemputc": 20,
        "windstrenghtmax": 21,
        "windanglemax": 22,
        "windmaxutc": 23,
        "timeutc": 24,
    }


def test_process_measure_copies_only_present_keys():
    measure = {"Temperature": 21.5, "Humidity": 40, "Rain": 0}

    assert process_measure(measure) == {
        "temperature": 21.5,
        "humidity": 40,
        "rain": 0,
    }


@pytest.mark.parametrize(("src_key", "dest_key"), MEASURE_FIELDS)
def test_process_measure_keeps_falsy_values(src_key, dest_key):
    assert process_measure({src_key: 0}) == {dest_key: 0}


def test_process_measure_ignores_unknown_and_lowercase_keys():
    assert process_measure({"co2": 500, "battery_vp": 5000, "Temperature": 1}) == {
        "temperature": 1
    }


@pytest.mark.parametrize("measure", [None, {}, "garbage", [1, 2]])
def test_process_measure_without_data_is_empty(measure):
    assert process_measure(measure) == {}


def test_process_measure_does_not_mutate_input():
    measure = {"Temperature": 1}

    result = process_measure(measure)
    result["temperature"] = 99

    assert measure == {"Temperature": 1}


STATION = {
    "_id": "70:ee:50:00:00:01",
    "station_name": "Casa",
    "type": "NAMain",
    "home_name": "Home",
    "reachable": True,
    "wifi_status": 56,
    "dashboard_data": {"Temperature": 21.3, "CO2": 612, "Noise": 38},
    "modules": [
        {
            "_id": "02:00:00:00:00:01",
            "module_name": "Outdoor",
            "type": "NAModule1",
            "reachable": False,
            "rf_status": 70,
            "battery_percent": 80,
            "dashboard_data": {"Temperature": 4.2, "Humidity": 88},
        },
        "not a module",
    ],
}


def test_station_record():
    assert station_record(STATION) == {
        "temperature": 21.3,
        "co2": 612,
        "noise": 38,
        "id": "70:ee:50:00:00:01",
        "name": "Casa",
        "type": "NAMain",
        "home": "Home",
        "online": 1,
        "wifistatus": 56,
    }


def test_module_record_inherits_station_home():
    module = station_modules(STATION)[0]

    assert module_record(STATION, module) == {
        "temperature": 4.2,
        "humidity": 88,
        "id": "02:00:00:00:00:01",
        "name": "Outdoor",
        "type": "NAModule1",
        "home": "Home",
        "online": 0,
        "rfstatus": 70,
        "battery": 80,
    }


def test_station_modules_skips_non_mappings_and_missing_list():
    assert len(station_modules(STATION)) == 1
    assert station_modules({"modules": None}) == []
    assert station_modules({}) == []


def test_unreachable_device_without_dashboard_keeps_identity():
    record = station_record({"_id": "x", "station_name": "Off", "reachable": False})

    assert record == {
        "id": "x",
        "name": "Off",
        "type": None,
        "home": None,
        "online": 0,
        "wifistatus": None,
    }


def test_aircare_record():
    aircare = {
        "_id": "70:ee:50:00:00:02",
        "station_name": "Bedroom",
        "module_name": "Healthy Home Coach",
        "type": "NHC",
        "reachable": True,
        "wifi_status": 44,
        "dashboard_data": {"health_idx": 1, "CO2": 950, "Temperature": 22.1},
    }

    assert aircare_record(aircare) == {
        "healthidx": 1,
        "co2": 950,
        "temperature": 22.1,
        "id": "70:ee:50:00:00:02",
        "name": "Bedroom",
        "type": "NHC",
        "module": "Healthy Home Coach",
        "online": 1,
        "wifistatus": 44,
    }
