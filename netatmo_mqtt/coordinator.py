"""Coordinator for polling Netatmo and publishing device records.

Strategy:
- Authenticate once with user credentials, then poll on a fixed interval.
- Each tick fetches every station and every air-quality monitor on the
  account, sequentially, and emits one record per device and per module.
- A failed tick is logged and the schedule carries on with the next one.
- A tick that finds no valid access token authenticates again first.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any, Protocol, cast

from .const import DEFAULT_SCAN_INTERVAL, FRAME_EVENT, LOGGER_NAME
from .netatmo import payloads as api_payloads
from .netatmo.client import NetatmoClient
from .netatmo.exceptions import NetatmoError, NetatmoParseError

_LOGGER = logging.getLogger(LOGGER_NAME)


class RecordSink(Protocol):
    """Receiver of normalized device records."""

    def emit(self, event: str, record: dict[str, Any]) -> None: ...


def _devices(payload: Any, source: str) -> list[Mapping[str, Any]]:
    if not isinstance(payload, list):
        raise NetatmoParseError(f"{source} devices payload was not a list")
    return [
        cast(Mapping[str, Any], d)
        for d in cast(list[Any], payload)
        if isinstance(d, Mapping)
    ]


class NetatmoPoller:
    """Polls the Netatmo API and hands every record to a sink."""

    def __init__(
        self,
        client: NetatmoClient,
        sink: RecordSink,
        *,
        interval: timedelta = DEFAULT_SCAN_INTERVAL,
    ) -> None:
        """Initialize the poller.

        Args:
            client: Authenticated (or authenticatable) API client.
            sink: Receiver of the emitted records.
            interval: Delay between two scheduled polls.

        Raises:
            ValueError: If `interval` is not positive.
        """
        if interval.total_seconds() <= 0:
            raise ValueError("Polling interval must be positive")
        self._client = client
        self._sink = sink
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _emit(self, record: dict[str, Any]) -> None:
        self._sink.emit(FRAME_EVENT, record)

    # ----------------- Processing -----------------

    def process_station(self, station: Mapping[str, Any]) -> None:
        """Emit a station record followed by one record per attached module."""
        self._emit(api_payloads.station_record(station))

        modules = api_payloads.station_modules(station)
        if not modules:
            _LOGGER.warning(
                "This station have no modules: %s", station.get("station_name")
            )
            return

        for module in modules:
            self._emit(api_payloads.module_record(station, module))

    def process_aircare(self, aircare: Mapping[str, Any]) -> None:
        """Emit the record of an air-quality monitor."""
        self._emit(api_payloads.aircare_record(aircare))

    async def _async_ensure_token(self) -> None:
        # A failed refresh leaves the client without an access token.
        client = self._client
        if client.token_valid:
            return
        _LOGGER.info("No valid access token; authenticating again")
        await client.connect(None, client.refresh_token, client.expires_at)

    async def async_poll_data(self) -> None:
        """Run one poll: all stations, then all air-quality monitors.

        Raises:
            NetatmoError: If fetching fails; nothing is swallowed here.
        """
        await self._async_ensure_token()

        stations = _devices(await self._client.get_stations_data(), "Station")
        for station in stations:
            _LOGGER.debug("Station data: %s", json.dumps(station, default=str))
            self.process_station(station)

        aircares = _devices(await self._client.get_home_coach_data(), "Aircare")
        for aircare in aircares:
            _LOGGER.debug("Aircare data: %s", json.dumps(aircare, default=str))
            self.process_aircare(aircare)

    # ----------------- Scheduling -----------------

    async def async_start_polling(self) -> Callable[[], None]:
        """Authenticate, poll once, then keep polling every `interval`.

        Returns:
            Callable that cancels the schedule. Calling it more than once is
            harmless. In-flight requests are not interrupted before the
            current tick has been cancelled at its next await point.

        Raises:
            NetatmoError: If the first authentication or poll fails.
        """
        await self._client.connect()
        await self.async_poll_data()

        self._task = asyncio.create_task(
            self._async_poll_loop(), name=f"{LOGGER_NAME} poller"
        )
        _LOGGER.info(
            "Polling Netatmo every %s seconds", int(self.interval.total_seconds())
        )
        return self.stop

    def stop(self) -> None:
        """Cancel the polling schedule."""
        if self._task is not None and not self._task.done():
            _LOGGER.debug("Stopping Netatmo polling")
            self._task.cancel()

    async def _async_safe_poll(self) -> None:
        try:
            await self.async_poll_data()
        except NetatmoError as err:
            _LOGGER.error("Netatmo poll failed: %s", err)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Unexpected error while polling Netatmo")

    async def _async_poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval.total_seconds()
        next_run = loop.time() + interval

        while True:
            await asyncio.sleep(max(0.0, next_run - loop.time()))
            await self._async_safe_poll()

            next_run += interval
            now = loop.time()
            if next_run <= now:
                # Ticks are never queued behind a slow poll.
                skipped = int((now - next_run) // interval) + 1
                _LOGGER.warning(
                    "Netatmo poll overran the %gs interval; skipping %s tick(s)",
                    interval,
                    skipped,
                )
                next_run += skipped * interval


__all__ = [
    "NetatmoPoller",
    "RecordSink",
]
