"""Command-line and environment configuration.

Every option can also be provided through an environment variable, which is
handy for container deployments. Command-line values win over the
environment.
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from .const import (
    DEFAULT_LOG_VERBOSITY,
    DEFAULT_MQTT_TOPIC,
    DEFAULT_MQTT_URL,
    LOG_VERBOSITY_LEVELS,
)
from .mqtt import redact_url

_SECRET_FIELDS = ("password", "client_secret")
_TRUE_VALUES = ("1", "true", "yes", "y", "on")


def _env_flag(value: str | None) -> bool:
    return str(value or "").strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class BridgeConfig:
    """Runtime configuration of the bridge."""

    username: str
    password: str
    client_id: str
    client_secret: str
    mqtt_url: str = DEFAULT_MQTT_URL
    mqtt_topic: str = DEFAULT_MQTT_TOPIC
    log_verbosity: str = DEFAULT_LOG_VERBOSITY
    # Accept broker certificates that fail validation.
    ssl_verify: bool = False

    @property
    def log_level(self) -> int:
        name = LOG_VERBOSITY_LEVELS.get(self.log_verbosity, "WARNING")
        return logging.getLevelName(name)

    def redacted(self) -> dict[str, Any]:
        """Return the configuration with secrets masked, for debug logging."""
        data = asdict(self)
        for key in _SECRET_FIELDS:
            if data.get(key):
                data[key] = "**REDACTED**"
        data["mqtt_url"] = redact_url(self.mqtt_url)
        return data


# (dest, short flag, long flag, env var, help)
_REQUIRED_OPTIONS: tuple[tuple[str, str, str, str, str], ...] = (
    ("username", "-a", "--username", "NETATMO_USERNAME", "Netatmo Dev username"),
    ("password", "-b", "--password", "NETATMO_PASSWORD", "Netatmo Dev password"),
    ("client_id", "-c", "--client-id", "NETATMO_CLIENT_ID", "Netatmo app Client ID"),
    (
        "client_secret",
        "-d",
        "--client-secret",
        "NETATMO_CLIENT_SECRET",
        "Netatmo app Client Secret",
    ),
)


def build_parser(environ: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    """Build the argument parser, using `environ` for defaults.

    Args:
        environ: Environment mapping; defaults to `os.environ`.

    Returns:
        Configured parser. Required options become optional when their
        environment variable is set.
    """
    env = os.environ if environ is None else environ
    parser = argparse.ArgumentParser(
        prog="netatmo-mqtt",
        description="Poll Netatmo weather stations and air-quality monitors "
        "and publish their measurements to MQTT.",
    )

    for dest, short, long, env_var, help_text in _REQUIRED_OPTIONS:
        env_value = env.get(env_var) or None
        parser.add_argument(
            short,
            long,
            dest=dest,
            default=env_value,
            required=env_value is None,
            help=f"{help_text} (env {env_var})",
        )

    parser.add_argument(
        "-u",
        "--mqtt-url",
        dest="mqtt_url",
        default=env.get("MQTT_URL") or DEFAULT_MQTT_URL,
        help="mqtt broker url (env MQTT_URL, default %(default)s)",
    )
    parser.add_argument(
        "-t",
        "--mqtt-topic",
        dest="mqtt_topic",
        default=env.get("MQTT_TOPIC") or DEFAULT_MQTT_TOPIC,
        help="mqtt topic prefix (env MQTT_TOPIC, default %(default)s)",
    )
    parser.add_argument(
        "-v",
        "--log-verbosity",
        dest="log_verbosity",
        choices=sorted(LOG_VERBOSITY_LEVELS),
        default=(env.get("LOG_VERBOSITY") or DEFAULT_LOG_VERBOSITY).lower(),
        help="log verbosity (env LOG_VERBOSITY, default %(default)s)",
    )
    parser.add_argument(
        "-s",
        "--ssl-verify",
        dest="ssl_verify",
        action="store_true",
        default=_env_flag(env.get("SSL_VERIFY")),
        help="allow ssl connections with invalid certs (env SSL_VERIFY)",
    )
    return parser


def parse_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> BridgeConfig:
    """Parse command-line arguments into a `BridgeConfig`.

    Raises:
        SystemExit: With status 2 when a required option is missing or a
            value is invalid (argparse behavior).
    """
    parser = build_parser(environ)
    args = parser.parse_args(argv)
    return BridgeConfig(
        username=args.username,
        password=args.password,
        client_id=args.client_id,
        client_secret=args.client_secret,
        mqtt_url=args.mqtt_url,
        mqtt_topic=args.mqtt_topic,
        log_verbosity=args.log_verbosity,
        ssl_verify=bool(args.ssl_verify),
    )
