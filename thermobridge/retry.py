"""Retry and backoff policy shared by both vendor clients.

Transient failures are retried at the transport level by
``httpx_retries.RetryTransport``; auth-expired responses are handled by the
``with_auth_refresh`` decorator, which gives the owning client exactly one
chance to refresh its session.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from httpx_retries import Retry, RetryTransport

from .api import (
    ApiError,
    AuthError,
    ErrorKind,
    SessionExpiredError,
    TransportError,
    classify_exception,
)
from .const import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_MAX_BACKOFF,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .api import AuthenticatedClient

_LOGGER = logging.getLogger(__name__)

RETRY_METHODS = ("GET", "POST", "PUT")
RETRY_STATUSES = (429, 500, 502, 503, 504)

_T = TypeVar("_T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for outbound calls.

    Attributes:
        attempts: Retries after the first attempt.
        backoff_factor: Base delay in seconds, doubled for every retry.
        max_backoff: Upper bound for a single delay in seconds.
        timeout: Per-attempt request timeout in seconds.

    """

    attempts: int = DEFAULT_RETRY_ATTEMPTS
    backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    max_backoff: float = DEFAULT_RETRY_MAX_BACKOFF
    timeout: float = DEFAULT_REQUEST_TIMEOUT

    def backoff_delays(self) -> list[float]:
        """Return the capped delay before each retry."""
        return [
            min(self.backoff_factor * (2**retry), self.max_backoff)
            for retry in range(self.attempts)
        ]

    def budget_seconds(self) -> float:
        """Return the worst-case duration of one call including all retries."""
        return (self.attempts + 1) * self.timeout + sum(self.backoff_delays())

    def to_retry(self) -> Retry:
        """Build the transport-level retry configuration."""
        return Retry(
            total=self.attempts,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff,
            allowed_methods=RETRY_METHODS,
            status_forcelist=RETRY_STATUSES,
            respect_retry_after_header=False,
        )


def create_session_client(policy: RetryPolicy | None = None) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the vendor APIs.

    Args:
        policy: Retry policy to apply; defaults to ``RetryPolicy()``.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    policy = policy or RetryPolicy()
    transport = RetryTransport(
        transport=httpx.AsyncHTTPTransport(),
        retry=policy.to_retry(),
    )
    return httpx.AsyncClient(transport=transport, timeout=policy.timeout)


def translate_transport_errors(
    func: Callable[..., Awaitable[_T]],
) -> Callable[..., Awaitable[_T]]:
    """Convert httpx request failures into ``TransportError``.

    Retries have already been spent by the transport when an exception
    reaches this wrapper.
    """

    @functools.wraps(func)
    async def wrapper(client: AuthenticatedClient, *args: Any, **kwargs: Any) -> _T:
        try:
            return await func(client, *args, **kwargs)
        except httpx.RequestError as err:
            error_msg = f"{client.name}: {type(err).__name__}: {err}"
            if classify_exception(err) is ErrorKind.TRANSIENT:
                raise TransportError(error_msg) from err
            raise ApiError(error_msg) from err

    return wrapper


def with_auth_refresh(
    func: Callable[..., Awaitable[_T]],
) -> Callable[..., Awaitable[_T]]:
    """Refresh the client's session once and retry on an auth-expired response.

    A second auth-expired response after the refresh is raised as
    ``AuthError``.
    """

    @functools.wraps(func)
    async def wrapper(client: AuthenticatedClient, *args: Any, **kwargs: Any) -> _T:
        try:
            return await func(client, *args, **kwargs)
        except SessionExpiredError as err:
            _LOGGER.info("%s session rejected (%s), refreshing", client.name, err)
            await client.refresh()

        try:
            return await func(client, *args, **kwargs)
        except SessionExpiredError as err:
            error_msg = f"{client.name} rejected credentials after refresh: {err}"
            _LOGGER.error(error_msg)
            raise AuthError(error_msg) from err

    return wrapper
