"""Internal API exception types.

These exceptions are raised by the standalone API client and helpers. The
bridge layer decides which of them are fatal at startup and which only fail a
single poll.

This module intentionally avoids MQTT imports.
"""

from __future__ import annotations


class NetatmoError(Exception):
    """Base exception for Netatmo API failures."""


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


class NetatmoConfigurationError(NetatmoError):
    """Client was constructed with missing credentials."""


class NetatmoMissingClientCredentialsError(NetatmoConfigurationError):
    """Application client id or client secret is missing."""

    def __init__(self) -> None:
        super().__init__(
            "Client id and client secret must be provided, see "
            "https://dev.netatmo.com/apidocumentation/oauth#client-credential"
        )


class NetatmoMissingUserCredentialsError(NetatmoConfigurationError):
    """Account username or password is missing."""

    def __init__(self) -> None:
        super().__init__("Username and password must be provided")


# -----------------------------------------------------------------------------
# Local preconditions (caller bugs, never retried)
# -----------------------------------------------------------------------------


class NetatmoPreconditionError(NetatmoError):
    """A required argument or token was not available before a request."""


class NetatmoMissingAccessTokenError(NetatmoPreconditionError):
    def __init__(self) -> None:
        super().__init__("Access token must be provided")


class NetatmoMissingRefreshTokenError(NetatmoPreconditionError):
    def __init__(self) -> None:
        super().__init__("Refresh token must be provided")


class NetatmoMissingHomeIdError(NetatmoPreconditionError):
    def __init__(self) -> None:
        super().__init__("Home id must be provided")


class NetatmoMissingMeasureParamsError(NetatmoPreconditionError):
    def __init__(self) -> None:
        super().__init__("Device id, Scale and Type must be provided")


# -----------------------------------------------------------------------------
# Remote failures
# -----------------------------------------------------------------------------


class NetatmoInvalidTokenError(NetatmoError):
    """Token endpoint answered without a usable access/refresh token pair."""

    def __init__(self) -> None:
        super().__init__("Invalid Netatmo token")


class NetatmoRequestFailedError(NetatmoError):
    """HTTP or network failure after the one-shot token retry ran its course.

    Attributes:
        path: API path that failed.
        message: Vendor or transport error message.
        status: HTTP status when a response was received.
    """

    def __init__(self, path: str, message: str, status: int | None = None) -> None:
        text = f"HTTP request {path} failed: {message}"
        if status is not None:
            text = f"{text} ({status})"
        super().__init__(text)
        self.path = path
        self.message = message
        self.status = status


class NetatmoParseError(NetatmoError):
    """Response body did not carry the expected envelope."""
