"""MQTT publish sink.

Publishes each normalized record as JSON to `<topic>/<record id>` and keeps a
retained availability flag on `<topic>/connected` (`1` while connected, `0`
via the last will or a clean disconnect).

paho runs its network loop on a background thread; `connect` and
`disconnect` block and should be called through `asyncio.to_thread` from async
code.
"""

from __future__ import annotations

import json
import logging
import secrets
import ssl
import threading
from typing import Any, Final

import paho.mqtt.client as mqtt
from yarl import URL

from .const import LOGGER_NAME, MQTT_CONNECT_TIMEOUT_SECONDS, TOPIC_CONNECTED

_LOGGER = logging.getLogger(LOGGER_NAME)

_SCHEME_PORTS: Final[dict[str, int]] = {
    "mqtt": 1883,
    "tcp": 1883,
    "mqtts": 8883,
    "ssl": 8883,
    "tls": 8883,
}
_SECURE_SCHEMES: Final[frozenset[str]] = frozenset({"mqtts", "ssl", "tls"})
_KEEPALIVE_SECONDS = 60
_DISCONNECT_PUBLISH_TIMEOUT = 2.0


class MqttPublishError(Exception):
    """Broker connection or publish failure."""


def redact_url(url: str) -> str:
    """Return the broker URL without user/password for logging."""
    try:
        return str(URL(url).with_user(None))
    except (TypeError, ValueError):
        return "<invalid url>"


class MqttPublisher:
    """Publishes device records to an MQTT broker."""

    def __init__(
        self,
        url: str,
        topic: str,
        *,
        allow_invalid_certs: bool = False,
        connect_timeout: float = MQTT_CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self.topic = topic.rstrip("/")
        self.allow_invalid_certs = allow_invalid_certs
        self.connect_timeout = connect_timeout
        self.debug_url = redact_url(url)

        self._client: mqtt.Client | None = None
        self._connected = threading.Event()
        self._connect_error: str | None = None
        self._ever_connected = False

    @property
    def availability_topic(self) -> str:
        return f"{self.topic}/{TOPIC_CONNECTED}"

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._connected.is_set()

    def topic_for(self, record_id: Any) -> str:
        return f"{self.topic}/{record_id}"

    # ----------------- Callbacks (paho network thread) -----------------

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any = None,
    ) -> None:
        if getattr(reason_code, "is_failure", False):
            if self._ever_connected:
                self._connected.clear()
                _LOGGER.warning("MQTT reconnect refused: %s", reason_code)
                return
            # Wake the waiter in `connect`, which reads `_connect_error`.
            self._connect_error = str(reason_code)
            self._connected.set()
            return
        self._connect_error = None
        if self._ever_connected:
            _LOGGER.debug("Reconnected to MQTT broker")
            client.publish(self.availability_topic, "1", retain=True)
        self._ever_connected = True
        self._connected.set()

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any = None,
    ) -> None:
        self._connected.clear()
        if getattr(reason_code, "is_failure", False):
            _LOGGER.warning("Disconnected from MQTT broker: %s", reason_code)

    # ----------------- Lifecycle -----------------

    def connect(self) -> None:
        """Connect to the broker and mark the bridge as available.

        Raises:
            MqttPublishError: If the URL is invalid, the broker cannot be
                reached within `connect_timeout`, refuses the connection, or
                the availability flag cannot be published.
        """
        try:
            parsed = URL(self.url)
            scheme = (parsed.scheme or "").lower()
            if scheme not in _SCHEME_PORTS or not parsed.host:
                raise ValueError(f"unsupported broker url {self.debug_url}")
        except (TypeError, ValueError) as err:
            raise MqttPublishError(f"MQTT connection error [{err}]") from err

        port = parsed.port or _SCHEME_PORTS[scheme]
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"{self.topic}_{secrets.token_hex(6)}",
        )
        if parsed.user:
            client.username_pw_set(parsed.user, parsed.password)
        client.will_set(self.availability_topic, "0", retain=True)
        if scheme in _SECURE_SCHEMES:
            cert_reqs = ssl.CERT_NONE if self.allow_invalid_certs else ssl.CERT_REQUIRED
            client.tls_set(cert_reqs=cert_reqs)
            client.tls_insecure_set(self.allow_invalid_certs)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

        self._connected.clear()
        self._connect_error = None
        self._ever_connected = False
        try:
            client.connect(parsed.host, port, keepalive=_KEEPALIVE_SECONDS)
        except (OSError, ValueError) as err:
            raise MqttPublishError(f"MQTT connection error [{err}]") from err

        client.loop_start()
        if not self._connected.wait(self.connect_timeout) or self._connect_error:
            reason = self._connect_error or "connection timed out"
            client.loop_stop()
            raise MqttPublishError(f"MQTT connection error [{reason}]")

        self._client = client
        _LOGGER.info("Connected to MQTT broker [%s]", self.debug_url)

        info = client.publish(self.availability_topic, "1", retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise MqttPublishError(f"MQTT publish error [{mqtt.error_string(info.rc)}]")

    def disconnect(self) -> None:
        """Clear the availability flag and disconnect. Safe to call twice."""
        client = self._client
        if client is None:
            return
        self._client = None
        try:
            info = client.publish(self.availability_topic, "0", retain=True)
            if info.rc == mqtt.MQTT_ERR_SUCCESS:
                info.wait_for_publish(timeout=_DISCONNECT_PUBLISH_TIMEOUT)
        except (RuntimeError, ValueError) as err:
            _LOGGER.debug("Could not clear availability flag: %s", err)
        client.disconnect()
        client.loop_stop()
        self._connected.clear()
        _LOGGER.info("Disconnected from MQTT broker")

    # ----------------- Sink -----------------

    def emit(self, event: str, record: dict[str, Any]) -> None:
        """Publish a record under its device topic.

        Failures are logged and never raised so one bad publish cannot stop a
        poll.
        """
        record_id = record.get("id")
        if not record_id:
            _LOGGER.warning("Dropping %s record without id", event)
            return
        client = self._client
        if client is None:
            _LOGGER.warning("MQTT not connected; dropping %s for %s", event, record_id)
            return

        topic = self.topic_for(record_id)
        payload = json.dumps(record, separators=(",", ":"), default=str)
        info = client.publish(topic, payload)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            _LOGGER.warning(
                "MQTT publish to %s failed: %s", topic, mqtt.error_string(info.rc)
            )
            return
        _LOGGER.debug("Published %s to %s", event, topic)


__all__ = [
    "MqttPublishError",
    "MqttPublisher",
    "redact_url",
]
