"""Standalone async API client.

This client owns the credentials, the OAuth2 token state and the aiohttp
session. It returns the vendor JSON unchanged from `request` and unwraps the
`body` envelope in the typed accessors.

Token state lifecycle:
    - empty at construction (`expires_at == 0`)
    - set by any successful authentication (`set_token`) or by adopting a
      still-valid token passed to `connect`
    - access token cleared (refresh token kept) when a request reports an
      expired token, immediately followed by re-authentication and exactly one
      retry of that request

This module intentionally avoids MQTT imports.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any, Final, cast

import aiohttp
import async_timeout

from .exceptions import (
    NetatmoInvalidTokenError,
    NetatmoMissingAccessTokenError,
    NetatmoMissingClientCredentialsError,
    NetatmoMissingHomeIdError,
    NetatmoMissingMeasureParamsError,
    NetatmoMissingRefreshTokenError,
    NetatmoMissingUserCredentialsError,
    NetatmoParseError,
    NetatmoRequestFailedError,
)
from .util import encode_params, error_to_text, to_int

_LOGGER = logging.getLogger(__name__)

API_BASE: Final = "https://api.netatmo.com"
PATH_AUTH: Final = "/oauth2/token"

HTTP_GET: Final = "GET"
HTTP_POST: Final = "POST"

# Vendor error code sent with 401/403 when the bearer token has expired.
TOKEN_EXPIRED_CODE: Final = 3

AUTH_SCOPE: Final = "read_station read_homecoach"

_DEFAULT_TIMEOUT_SECONDS = 10
_AUTH_ERROR_STATUSES: Final[frozenset[int]] = frozenset({401, 403})


def _parse_json(body: str) -> Any:
    if not body or not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body


def _is_token_expired(payload: Mapping[str, Any]) -> bool:
    error_any: Any = payload.get("error")
    if not isinstance(error_any, Mapping):
        return False
    code: Any = cast(Mapping[str, Any], error_any).get("code")
    return isinstance(code, int) and code == TOKEN_EXPIRED_CODE


def _error_details(payload: Mapping[str, Any]) -> str | None:
    """Pick the most specific vendor error message.

    Order: OAuth2 `error_description`, then application `error.message`, then
    the whole `error` value rendered as JSON.
    """
    description: Any = payload.get("error_description")
    if isinstance(description, str) and description:
        return description

    error_any: Any = payload.get("error")
    if isinstance(error_any, Mapping):
        message: Any = cast(Mapping[str, Any], error_any).get("message")
        if message:
            return str(message)
    if error_any:
        return error_to_text(error_any)
    return None


def _as_list(value: str | Iterable[str] | None) -> list[str]:
    # A bare string is one value, not a sequence of characters.
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class NetatmoClient:
    """Async client for the Netatmo weather and air-quality REST API."""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        username: str | None,
        password: str | None,
        *,
        timeout_seconds: int | None = None,
        session: aiohttp.ClientSession | None = None,
        api_base: str = API_BASE,
    ) -> None:
        if not client_id or not client_secret:
            raise NetatmoMissingClientCredentialsError
        if not username or not password:
            raise NetatmoMissingUserCredentialsError

        self._client_id = client_id
        self._client_secret = client_secret
        self._username = username
        self._password = password
        self.timeout_seconds = int(timeout_seconds or _DEFAULT_TIMEOUT_SECONDS)
        self._api_base = api_base.rstrip("/") if api_base else API_BASE

        self._session = session
        self._owns_session = session is None

        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at: float = 0
        self._auth_lock = asyncio.Lock()

    # ----------------- Credentials / token state -----------------

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def client_secret(self) -> str:
        return self._client_secret

    @property
    def username(self) -> str:
        return self._username

    @property
    def password(self) -> str:
        return self._password

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    @property
    def expires_at(self) -> float:
        """Access token expiry as a Unix timestamp (seconds)."""
        return self._expires_at

    @property
    def token_valid(self) -> bool:
        """Return True when an access token is held and not yet expired."""
        return bool(self._access_token) and self._expires_at > time.time()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def async_close(self) -> None:
        """Close any internally-owned aiohttp session."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # ----------------- Authentication -----------------

    async def connect(
        self,
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: float = 0,
    ) -> None:
        """Authenticate with the best credentials available.

        Args:
            access_token: Previously obtained access token.
            refresh_token: Refresh token used when the access token is not
                usable.
            expires_at: Unix timestamp at which `access_token` expires.

        Raises:
            NetatmoInvalidTokenError: If the token endpoint answer is unusable.
            NetatmoRequestFailedError: If the token endpoint request fails.
        """
        if self._check_and_set_access_token(access_token, expires_at):
            if refresh_token:
                self._refresh_token = refresh_token
            _LOGGER.debug("Using provided access token")
            return
        if refresh_token:
            await self.authenticate_by_refresh_token(refresh_token)
            return
        await self.authenticate_by_client_credentials()

    def _check_and_set_access_token(
        self, access_token: str | None, expires_at: float
    ) -> bool:
        if access_token and expires_at > time.time():
            self._access_token = access_token
            self._expires_at = expires_at
            return True
        return False

    async def authenticate_by_refresh_token(self, refresh_token: str | None) -> None:
        """Obtain a new access token with the refresh-token grant.

        Raises:
            NetatmoMissingRefreshTokenError: If no refresh token is given.
        """
        if not refresh_token:
            raise NetatmoMissingRefreshTokenError
        self._refresh_token = refresh_token
        _LOGGER.debug("Authenticating with refresh token")
        authentication = await self.request(
            HTTP_POST,
            PATH_AUTH,
            data={
                "grant_type": "refresh_token",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": self._refresh_token,
            },
        )
        self.set_token(authentication)

    async def authenticate_by_client_credentials(self) -> None:
        """Obtain a new access token with the account username and password.

        The vendor names this grant `password`; it is not the OAuth2
        `client_credentials` grant.
        """
        _LOGGER.debug(
            "Authenticating with user credentials for domain=%s",
            (
                self._username.split("@")[-1]
                if "@" in self._username
                else "<no-domain>"
            ),
        )
        authentication = await self.request(
            HTTP_POST,
            PATH_AUTH,
            data={
                "grant_type": "password",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "username": self._username,
                "password": self._password,
                "scope": AUTH_SCOPE,
            },
        )
        self.set_token(authentication)

    def set_token(self, authentication: Any) -> None:
        """Store access and refresh tokens from a token endpoint answer.

        Args:
            authentication: Parsed token endpoint JSON with `access_token`,
                `refresh_token` and `expires_in`.

        Raises:
            NetatmoInvalidTokenError: If any of the three is missing or empty,
                or `expires_in` is not a positive number of seconds.
        """
        if not isinstance(authentication, Mapping):
            raise NetatmoInvalidTokenError
        auth = cast(Mapping[str, Any], authentication)
        access_token: Any = auth.get("access_token")
        refresh_token: Any = auth.get("refresh_token")
        expires_in = to_int(auth.get("expires_in"))
        if (
            not isinstance(access_token, str)
            or not access_token
            or not isinstance(refresh_token, str)
            or not refresh_token
            or expires_in is None
            or expires_in <= 0
        ):
            raise NetatmoInvalidTokenError

        self._access_token = access_token
        self._refresh_token = refresh_token
        self._expires_at = int(time.time()) + expires_in
        _LOGGER.debug("Access token stored; expires in %ss", expires_in)

    # ----------------- Requests -----------------

    async def _reauthenticate(self, stale_token: str | None) -> None:
        async with self._auth_lock:
            # Another request may already have replaced the expired token.
            if self._access_token and self._access_token != stale_token:
                return
            self._access_token = None
            await self.connect(None, self._refresh_token, self._expires_at)

    async def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        *,
        is_retry: bool = False,
    ) -> Any:
        """Request the Netatmo API.

        Args:
            method: HTTP method (`GET`, `POST`).
            path: API path, for example `/api/getstationsdata`.
            params: Parameters sent as query string.
            data: Parameters sent as a form-urlencoded body.
            is_retry: True for the single retry after a token refresh.

        Returns:
            Parsed JSON response (text when the body is not JSON).

        Raises:
            NetatmoMissingAccessTokenError: If no token is held for an API path.
            NetatmoRequestFailedError: On transport errors and HTTP errors.
        """
        headers: dict[str, str] = {"Accept": "application/json"}
        sent_token: str | None = None
        if path != PATH_AUTH:
            if not self._access_token:
                raise NetatmoMissingAccessTokenError
            sent_token = self._access_token
            headers["Authorization"] = f"Bearer {sent_token}"

        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = encode_params(params)
        if data:
            kwargs["data"] = encode_params(data)

        url = f"{self._api_base}{path}"
        _LOGGER.debug("HTTP %s %s%s", method, url, " (retry)" if is_retry else "")

        try:
            async with async_timeout.timeout(self.timeout_seconds):
                async with self.session.request(method, url, **kwargs) as resp:
                    status = resp.status
                    body = await resp.text()
        except asyncio.TimeoutError as err:
            raise NetatmoRequestFailedError(
                path, f"timeout of {self.timeout_seconds}s exceeded"
            ) from err
        except aiohttp.ClientError as err:
            raise NetatmoRequestFailedError(
                path, str(err) or type(err).__name__
            ) from err

        payload = _parse_json(body)
        _LOGGER.debug("HTTP %s -> %s", url, status)
        if status < 400:
            return payload

        error_payload: Mapping[str, Any] = (
            cast(Mapping[str, Any], payload) if isinstance(payload, Mapping) else {}
        )

        if (
            not is_retry
            and path != PATH_AUTH
            and status in _AUTH_ERROR_STATUSES
            and _is_token_expired(error_payload)
        ):
            _LOGGER.info("Access token expired; refreshing before retry of %s", path)
            await self._reauthenticate(sent_token)
            return await self.request(method, path, params, data, is_retry=True)

        details = _error_details(error_payload)
        if details is not None:
            _LOGGER.debug("HTTP error %s %s -> %s: %s", method, url, status, details)
            raise NetatmoRequestFailedError(path, details, status)

        raise NetatmoRequestFailedError(
            path, f"Request failed with status code {status}"
        )

    # ----------------- Public API -----------------

    @staticmethod
    def _unwrap(result: Any, path: str, field: str | None = None) -> Any:
        body: Any = (
            cast(Mapping[str, Any], result).get("body")
            if isinstance(result, Mapping)
            else None
        )
        if body is None:
            raise NetatmoParseError(f"Response from {path} has no body")
        if field is None:
            return body
        if not isinstance(body, Mapping) or field not in body:
            raise NetatmoParseError(f"Response body from {path} has no {field}")
        return cast(Mapping[str, Any], body)[field]

    async def get_homes_data(
        self,
        home_id: str | None = None,
        gateway_types: str | Iterable[str] | None = None,
    ) -> Any:
        """Retrieve user homes and their topology.

        Args:
            home_id: Filter by home id.
            gateway_types: Filter by gateway type (BNS, NLG, OTH, NBG).

        Returns:
            The `homes` list.
        """
        path = "/api/homesdata"
        params = {
            "home_id": home_id,
            "gateway_types": _as_list(gateway_types),
        }
        return self._unwrap(await self.request(HTTP_GET, path, params), path, "homes")

    async def get_home_status(
        self,
        home_id: str | None,
        gateway_types: str | Iterable[str] | None = None,
    ) -> Any:
        """Retrieve the current status of a home and its devices.

        Raises:
            NetatmoMissingHomeIdError: If `home_id` is empty.
        """
        if not home_id:
            raise NetatmoMissingHomeIdError
        path = "/api/homestatus"
        params = {
            "home_id": home_id,
            "gateway_types": _as_list(gateway_types),
        }
        return self._unwrap(await self.request(HTTP_GET, path, params), path, "home")

    async def get_stations_data(
        self, device_id: str | None = None, get_favorites: bool = False
    ) -> Any:
        """Return weather stations with their modules and latest measurements.

        Args:
            device_id: Station MAC address; all stations when omitted.
            get_favorites: Also return the user's favorite public stations.

        Returns:
            The `devices` list.
        """
        path = "/api/getstationsdata"
        params = {"device_id": device_id, "get_favorites": get_favorites}
        return self._unwrap(
            await self.request(HTTP_GET, path, params), path, "devices"
        )

    async def get_measure(
        self,
        device_id: str | None,
        module_id: str | None,
        scale: str | None,
        type_: str | Iterable[str] | None,
        date_begin: int | None = None,
        date_end: int | None = None,
        limit: int | None = None,
        optimize: bool = True,
        real_time: bool = False,
    ) -> Any:
        """Return historical measurements of a device or module.

        Args:
            device_id: Station MAC address.
            module_id: Module MAC address (station itself when omitted).
            scale: Timeframe between two measurements (`max`, `30min`,
                `1hour`, `3hours`, `1day`, `1week`, `1month`).
            type_: Measurement type(s) to return.
            date_begin: Unix timestamp of the first measurement.
            date_end: Unix timestamp of the last measurement.
            limit: Maximum number of measurements (1024 max).
            optimize: Ask for the compact answer format.
            real_time: Return exact timestamps instead of scale midpoints.

        Returns:
            The response `body`.

        Raises:
            NetatmoMissingMeasureParamsError: If device id, scale or type is
                missing.
        """
        if not device_id or not scale or not type_:
            raise NetatmoMissingMeasureParamsError
        path = "/api/getmeasure"
        params = {
            "device_id": device_id,
            "module_id": module_id,
            "scale": scale,
            "type": _as_list(type_),
            "date_begin": date_begin,
            "date_end": date_end,
            "limit": limit,
            "optimize": optimize,
            "real_time": real_time,
        }
        return self._unwrap(await self.request(HTTP_GET, path, params), path)

    async def get_home_coach_data(self, device_id: str | None = None) -> Any:
        """Return air-quality monitors and their latest measurements.

        Returns:
            The `devices` list.
        """
        path = "/api/gethomecoachsdata"
        params = {"device_id": device_id}
        return self._unwrap(
            await self.request(HTTP_GET, path, params), path, "devices"
        )
