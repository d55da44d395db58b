"""Shared API plumbing for the thermostat and sensor clients.

This module provides the error taxonomy, the classification of responses
and transport failures, response validation, and the capability both
vendor clients implement.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

import httpx

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_UNPROCESSABLE = 422
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR = 500

VALIDATION_STATUSES = frozenset({HTTP_BAD_REQUEST, HTTP_CONFLICT, HTTP_UNPROCESSABLE})
TRANSIENT_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


class ThermobridgeError(Exception):
    """Base exception for thermobridge errors."""


class AuthError(ThermobridgeError):
    """Credentials are invalid or were rejected again after a refresh."""


class SessionExpiredError(ThermobridgeError):
    """The vendor rejected the current access token."""


class DeviceError(ThermobridgeError):
    """The device is unknown or has no recent data."""


class ValidationError(ThermobridgeError):
    """The vendor rejected the requested value."""


class TransportError(ThermobridgeError):
    """Network failure, timeout, or server error after retries."""


class ApiError(ThermobridgeError):
    """Any other permanent error reported by a vendor API."""


class ErrorKind(StrEnum):
    """How a failed call should be handled."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    AUTH_EXPIRED = "auth_expired"


@runtime_checkable
class AuthenticatedClient(Protocol):
    """Capability shared by the vendor clients."""

    name: str

    async def ensure_valid_session(self) -> None:
        """Make sure a usable session exists before a call."""

    async def refresh(self) -> None:
        """Renew the session after the vendor rejected it."""

    async def execute(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send an authenticated request and return the decoded body."""


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error.

    Args:
        status: HTTP status code to check.

    Returns:
        True if status code is 400 or higher, False otherwise.

    """
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an expired or rejected token.

    Args:
        status: HTTP status code to check.

    Returns:
        True if status code is 401, False otherwise.

    """
    return status == HTTP_UNAUTHORIZED


def classify_status(status: int) -> ErrorKind | None:
    """Classify an HTTP status code.

    Args:
        status: HTTP status code to classify.

    Returns:
        The error kind, or None for a successful status.

    """
    if not is_http_error(status):
        return None
    if is_auth_error(status):
        return ErrorKind.AUTH_EXPIRED
    if status == HTTP_TOO_MANY_REQUESTS or status >= HTTP_SERVER_ERROR:
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def classify_exception(err: Exception) -> ErrorKind:
    """Classify an exception raised while sending a request."""
    if isinstance(err, TRANSIENT_EXCEPTIONS):
        return ErrorKind.TRANSIENT
    if isinstance(err, SessionExpiredError):
        return ErrorKind.AUTH_EXPIRED
    return ErrorKind.PERMANENT


def _error_message(response: httpx.Response) -> str:
    """Extract the vendor's error message from a response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


def validate_response(response: httpx.Response) -> Any:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON data from response, or None for an empty body.

    Raises:
        SessionExpiredError: If the access token was rejected.
        AuthError: If access is forbidden.
        DeviceError: If the resource does not exist.
        ValidationError: If the request payload was rejected.
        TransportError: If the server kept failing after retries.
        ApiError: For any other error status.

    """
    _validate_http_status(response)
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON response: {err}"
        raise ApiError(error_msg) from err


def _validate_http_status(response: httpx.Response) -> None:
    kind = classify_status(response.status_code)
    if kind is None:
        return

    status = response.status_code
    message = f"Request failed: {status} {_error_message(response)}"
    _LOGGER.debug("Classified HTTP %d as %s", status, kind)

    if kind is ErrorKind.AUTH_EXPIRED:
        raise SessionExpiredError(message)
    if kind is ErrorKind.TRANSIENT:
        raise TransportError(message)
    if status == HTTP_FORBIDDEN:
        raise AuthError(message)
    if status == HTTP_NOT_FOUND:
        raise DeviceError(message)
    if status in VALIDATION_STATUSES:
        raise ValidationError(message)
    raise ApiError(message)
