"""Conversion and request-encoding helpers for the Netatmo API package.

The API answers with loosely typed JSON (numbers may arrive as strings) and
expects its own query conventions, so both directions are normalized here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

# -----------------------------------------------------------------------------
# Conversions
# -----------------------------------------------------------------------------


def to_int(value: Any) -> int | None:
    """Read a whole number such as the token answer's `expires_in`.

    Numeric strings are accepted. Booleans, fractional numbers and anything
    else yield `None` so callers can reject the value.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def online_flag(reachable: Any) -> int:
    """Map a vendor reachability value to the published `1`/`0` flag."""
    return 1 if reachable else 0


# -----------------------------------------------------------------------------
# Request encoding
# -----------------------------------------------------------------------------


def _encode_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, Mapping):
        return None if not value else json.dumps(value, separators=(",", ":"))
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_encode_value(v) for v in value]
        joined = ",".join(i for i in items if i is not None)
        return joined or None
    return str(value)


def encode_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """Encode query/form parameters for aiohttp.

    aiohttp only accepts str/int/float values. The vendor API expects lowercase
    booleans and comma separated lists, and unset optional parameters must be
    omitted rather than sent empty.

    Args:
        params: Raw parameter mapping (may be `None`).

    Returns:
        A new dict containing only the parameters that carry a value.
    """
    out: dict[str, str] = {}
    for key, value in (params or {}).items():
        encoded = _encode_value(value)
        if encoded is not None:
            out[str(key)] = encoded
    return out


def error_to_text(error: Any) -> str:
    """Render a vendor `error` value the way it appears in error messages."""
    if isinstance(error, str):
        return json.dumps(error)
    try:
        return json.dumps(error, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(error)
