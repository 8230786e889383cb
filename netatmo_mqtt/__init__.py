"""Netatmo to MQTT bridge.

Polls the Netatmo cloud API for weather stations and air-quality monitors and
republishes one flat JSON record per device and module to an MQTT broker.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from collections.abc import Callable

from .config import BridgeConfig
from .const import DEFAULT_SCAN_INTERVAL, DEFAULT_TIMEOUT_SECONDS, LOGGER_NAME
from .coordinator import NetatmoPoller
from .mqtt import MqttPublishError, MqttPublisher
from .netatmo.client import NetatmoClient
from .netatmo.exceptions import NetatmoError

_LOGGER = logging.getLogger(LOGGER_NAME)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event
) -> Callable[[], None]:
    """Set `stop_event` on SIGINT/SIGTERM; return a callable removing the handlers."""

    installed: list[signal.Signals] = []

    def _on_signal(sig: signal.Signals) -> None:
        _LOGGER.debug("%s received", sig.name)
        stop_event.set()

    for sig in _STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops and non-main threads.
            continue
        installed.append(sig)

    def _remove() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return _remove


async def async_run_bridge(
    config: BridgeConfig,
    *,
    stop_event: asyncio.Event | None = None,
    publisher: MqttPublisher | None = None,
    client: NetatmoClient | None = None,
) -> None:
    """Connect MQTT, start polling, and run until `stop_event` is set.

    Args:
        config: Bridge configuration.
        stop_event: Event that ends the run; SIGINT/SIGTERM set it.
        publisher: Publish sink (built from `config` when omitted).
        client: API client (built from `config` when omitted).

    Raises:
        NetatmoError: If authentication or the first poll fails.
        MqttPublishError: If the broker cannot be reached.
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    remove_handlers = _install_signal_handlers(loop, stop_event)

    publisher = publisher or MqttPublisher(
        config.mqtt_url,
        config.mqtt_topic,
        allow_invalid_certs=config.ssl_verify,
    )
    try:
        client = client or NetatmoClient(
            config.client_id,
            config.client_secret,
            config.username,
            config.password,
            timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        )
        await asyncio.to_thread(publisher.connect)
        try:
            poller = NetatmoPoller(client, publisher, interval=DEFAULT_SCAN_INTERVAL)
            stop_polling = await poller.async_start_polling()
            try:
                await stop_event.wait()
            finally:
                stop_polling()
        finally:
            await asyncio.to_thread(publisher.disconnect)
            await client.async_close()
    finally:
        remove_handlers()


async def async_main(config: BridgeConfig) -> int:
    """Run the bridge and translate startup failures into an exit code.

    Returns:
        0 after a clean shutdown, 1 when the bridge could not run.
    """
    _LOGGER.info("Starting netatmo API")
    _LOGGER.debug("Configuration: %s", json.dumps(config.redacted()))
    try:
        await async_run_bridge(config)
    except (NetatmoError, MqttPublishError) as err:
        _LOGGER.error("Unable to run => See errors below")
        _LOGGER.error("%s", err)
        return 1
    return 0


__all__ = [
    "async_main",
    "async_run_bridge",
]
