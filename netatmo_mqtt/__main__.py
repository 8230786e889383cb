"""Process entry point: `python -m netatmo_mqtt` / `netatmo-mqtt`."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence

from . import async_main
from .config import parse_config

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: int) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(level)
    root.addHandler(handler)


def main(argv: Sequence[str] | None = None) -> int:
    config = parse_config(argv)
    setup_logging(config.log_level)
    return asyncio.run(async_main(config))


if __name__ == "__main__":
    sys.exit(main())
