"""Tests for the bridge lifecycle and process entry point."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

from netatmo_mqtt import async_main, async_run_bridge
from netatmo_mqtt.__main__ import main
from netatmo_mqtt.config import BridgeConfig
from netatmo_mqtt.mqtt import MqttPublishError
from netatmo_mqtt.netatmo.exceptions import NetatmoRequestFailedError

CONFIG = BridgeConfig(
    username="user@example.com",
    password="pw",
    client_id="cid",
    client_secret="secret",
)


class _Publisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.connected = False
        self.disconnects = 0
        self.records: list[dict[str, Any]] = []

    def connect(self) -> None:
        if self.fail:
            raise MqttPublishError("MQTT connection error [refused]")
        self.connected = True

    def disconnect(self) -> None:
        self.disconnects += 1
        self.connected = False

    def emit(self, event: str, record: dict[str, Any]) -> None:
        self.records.append(record)


class _Client:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False
        self.token_valid = False
        self.refresh_token: str | None = None
        self.expires_at: float = 0

    async def connect(self) -> None:
        if self.fail:
            raise NetatmoRequestFailedError(
                "/oauth2/token", "invalid_client", 400
            )
        self.token_valid = True

    async def get_stations_data(self) -> Any:
        return [{"_id": "s1", "station_name": "Casa", "modules": []}]

    async def get_home_coach_data(self) -> Any:
        return [{"_id": "a1", "station_name": "Bedroom"}]

    async def async_close(self) -> None:
        self.closed = True


async def test_run_bridge_publishes_until_stopped():
    publisher = _Publisher()
    client = _Client()
    stop_event = asyncio.Event()

    async def _stop_soon():
        while not publisher.records:
            await asyncio.sleep(0)
        stop_event.set()

    stopper = asyncio.create_task(_stop_soon())
    await async_run_bridge(
        CONFIG,
        stop_event=stop_event,
        publisher=cast(Any, publisher),
        client=cast(Any, client),
    )
    await stopper

    assert [r["id"] for r in publisher.records] == ["s1", "a1"]
    assert publisher.disconnects == 1
    assert client.closed


async def test_run_bridge_cleans_up_when_authentication_fails():
    publisher = _Publisher()
    client = _Client(fail=True)

    try:
        await async_run_bridge(
            CONFIG, publisher=cast(Any, publisher), client=cast(Any, client)
        )
    except NetatmoRequestFailedError:
        pass
    else:
        raise AssertionError("expected NetatmoRequestFailedError")

    assert publisher.disconnects == 1
    assert client.closed


async def test_async_main_reports_startup_failure(monkeypatch, caplog):
    async def _failing_bridge(config):
        raise MqttPublishError("MQTT connection error [refused]")

    monkeypatch.setattr("netatmo_mqtt.async_run_bridge", _failing_bridge)

    with caplog.at_level(logging.ERROR):
        code = await async_main(CONFIG)

    assert code == 1
    assert "Unable to run => See errors below" in caplog.text
    assert "MQTT connection error [refused]" in caplog.text


async def test_async_main_returns_zero_after_clean_shutdown(monkeypatch, caplog):
    async def _bridge(config):
        return None

    monkeypatch.setattr("netatmo_mqtt.async_run_bridge", _bridge)

    with caplog.at_level(logging.DEBUG, logger="netatmo_mqtt"):
        code = await async_main(CONFIG)

    assert code == 0
    assert "Starting netatmo API" in caplog.text
    assert "**REDACTED**" in caplog.text
    assert '"pw"' not in caplog.text


def test_main_parses_arguments_and_runs(monkeypatch):
    seen: list[BridgeConfig] = []

    async def _async_main(config):
        seen.append(config)
        return 0

    monkeypatch.setattr("netatmo_mqtt.__main__.async_main", _async_main)
    monkeypatch.setattr("netatmo_mqtt.__main__.setup_logging", lambda level: None)

    code = main(["-a", "u", "-b", "p", "-c", "i", "-d", "s", "-v", "error"])

    assert code == 0
    assert seen[0].username == "u"
    assert seen[0].log_level == logging.ERROR
