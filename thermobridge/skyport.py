"""Thermostat client for the Daikin Skyport cloud API.

This module provides functions to parse Skyport responses and the
``SkyportClient``, which owns the thermostat session: it logs in lazily,
refreshes the access token before it expires or when the API rejects it,
and reads and writes device state.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from .api import (
    ApiError,
    AuthError,
    DeviceError,
    SessionExpiredError,
    ValidationError,
    validate_response,
)
from .const import (
    DEFAULT_OVERRIDE_DURATION,
    MODE_COOL,
    MODE_UNSUPPORTED,
    SETPOINT_COOL,
    SETPOINT_HEAT,
    SKYPORT_BASE_URL,
    SKYPORT_MODE_MAP,
    SKYPORT_SETPOINT_FIELDS,
    TOKEN_REFRESH_MARGIN,
)
from .models import AccessToken, ThermostatDevice, ThermostatSession, ThermostatState
from .retry import translate_transport_errors, with_auth_refresh

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

_LOGGER = logging.getLogger(__name__)


def create_headers(access_token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for Skyport API requests.

    Args:
        access_token: Optional access token to send as a bearer token.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def extract_tokens(data: dict[str, Any], now: datetime) -> tuple[AccessToken, str | None]:
    """Extract the access token and refresh token from a login response.

    Args:
        data: API response data dictionary.
        now: Current time, used to turn the relative lifetime into an expiry.

    Returns:
        Tuple of (access token, refresh token). The refresh token is None
        when the response does not carry one.

    Raises:
        ApiError: If the response has no access token.

    """
    try:
        token = data["accessToken"]
        expires_in = int(data.get("accessTokenExpiresIn", 0))
    except (KeyError, TypeError, ValueError) as err:
        error_msg = f"Malformed token response: {err}"
        raise ApiError(error_msg) from err
    access_token = AccessToken(token=token, expire_at=now + timedelta(seconds=expires_in))
    return access_token, data.get("refreshToken")


def extract_devices(data: list[dict[str, Any]]) -> list[ThermostatDevice]:
    """Extract device list from API response.

    Args:
        data: API response data list.

    Returns:
        List of ThermostatDevice objects.

    """
    return [ThermostatDevice(id=str(d["id"]), name=d.get("name", "")) for d in data or []]


def _optional_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def extract_state(data: dict[str, Any]) -> ThermostatState:
    """Decode a ``deviceData`` response into a ThermostatState.

    Args:
        data: API response data dictionary.

    Returns:
        ThermostatState with mode and setpoints.

    Raises:
        ApiError: If setpoints are missing or not numeric.

    """
    try:
        return ThermostatState(
            mode=SKYPORT_MODE_MAP.get(data.get("mode"), MODE_UNSUPPORTED),
            heat_setpoint=float(data["hspHome"]),
            cool_setpoint=float(data["cspHome"]),
            indoor_temperature=_optional_float(data.get("tempIndoor")),
            setpoint_minimum=_optional_float(data.get("setpointMinimum")),
            setpoint_maximum=_optional_float(data.get("setpointMaximum")),
        )
    except (KeyError, TypeError, ValueError) as err:
        error_msg = f"Malformed device data: {err}"
        raise ApiError(error_msg) from err


def build_setpoint_payload(kind: str, value: float, duration: int) -> dict[str, Any]:
    """Build the body of a setpoint write.

    The write is sent as a schedule override so the thermostat's own
    schedule resumes once the bridge stops adjusting it.
    """
    return {
        SKYPORT_SETPOINT_FIELDS[kind]: value,
        "schedOverride": 1,
        "schedOverrideDuration": duration,
    }


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SkyportClient:
    """Authenticated access to the Skyport thermostat API."""

    name = "thermostat"

    def __init__(
        self,
        session: httpx.AsyncClient,
        email: str,
        password: str,
        *,
        device_id: str | None = None,
        override_duration: int = DEFAULT_OVERRIDE_DURATION,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            session: HTTP client session, usually from ``create_session_client``.
            email: Account email address.
            password: Account password.
            device_id: Thermostat identifier, discovered when omitted.
            override_duration: Minutes a written setpoint overrides the schedule.
            now: Clock returning an aware UTC datetime.

        """
        self._http = session
        self._email = email
        self._password = password
        self._override_duration = override_duration
        self._now = now
        self._session: ThermostatSession | None = None
        self._bounds: dict[str, tuple[float | None, float | None]] = {}
        self.device_id = device_id

    @property
    def authenticated(self) -> bool:
        """Return True once a session exists."""
        return self._session is not None

    def session_expires_soon(self) -> bool:
        """Return True if the access token has less than the refresh margin left."""
        if self._session is None:
            return True
        remaining = self._session.expire_at - self._now()
        return remaining < timedelta(seconds=TOKEN_REFRESH_MARGIN)

    @translate_transport_errors
    async def authenticate(self) -> None:
        """Exchange the account credentials for access and refresh tokens.

        Raises:
            AuthError: If the credentials are rejected or no refresh token
                is returned.
            TransportError: If the API stays unreachable after retries.

        """
        url = f"{SKYPORT_BASE_URL}/users/auth/login"
        payload = {"email": self._email, "password": self._password}

        _LOGGER.debug("Authenticating with Skyport API")
        response = await self._http.post(url, headers=create_headers(), json=payload)
        try:
            data = validate_response(response)
        except (SessionExpiredError, DeviceError, ValidationError, ApiError) as err:
            error_msg = f"Skyport login rejected: {err}"
            raise AuthError(error_msg) from err

        access_token, refresh_token = extract_tokens(data, self._now())
        if not refresh_token:
            error_msg = "Skyport login did not return a refresh token"
            raise AuthError(error_msg)

        self._session = ThermostatSession(
            access_token=access_token,
            refresh_token=refresh_token,
            device_id=self.device_id,
        )
        _LOGGER.info(
            "Authenticated with Skyport API, token expires at %s",
            access_token.expire_at.isoformat(),
        )

    @translate_transport_errors
    async def refresh(self) -> None:
        """Exchange the refresh token for a new access token.

        Falls back to a full login when the refresh token itself is rejected.
        """
        if self._session is None:
            await self.authenticate()
            return

        url = f"{SKYPORT_BASE_URL}/users/auth/token"
        payload = {"email": self._email, "refreshToken": self._session.refresh_token}

        _LOGGER.debug("Refreshing Skyport access token")
        response = await self._http.post(url, headers=create_headers(), json=payload)
        try:
            data = validate_response(response)
        except (SessionExpiredError, AuthError, ValidationError) as err:
            _LOGGER.warning(
                "Refresh token expired or invalid, performing full re-authentication: %s",
                err,
            )
            await self.authenticate()
            return

        access_token, refresh_token = extract_tokens(data, self._now())
        self._session.access_token = access_token
        if refresh_token:
            self._session.refresh_token = refresh_token
        _LOGGER.info("Successfully refreshed Skyport access token")

    async def ensure_valid_session(self) -> None:
        """Log in on first use and refresh shortly before the token expires."""
        if self._session is None:
            await self.authenticate()
        elif self.session_expires_soon():
            _LOGGER.debug(
                "Access token expires at %s, refreshing proactively",
                self._session.expire_at.isoformat(),
            )
            await self.refresh()

    @with_auth_refresh
    @translate_transport_errors
    async def execute(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send an authenticated request and return the decoded body."""
        await self.ensure_valid_session()
        if self._session is None:
            error_msg = "No Skyport session after authentication"
            raise AuthError(error_msg)
        response = await self._http.request(
            method,
            url,
            headers=create_headers(self._session.access_token.token),
            json=json,
            params=params,
        )
        return validate_response(response)

    async def get_devices(self) -> list[ThermostatDevice]:
        """Fetch the thermostats registered on the account."""
        data = await self.execute("GET", f"{SKYPORT_BASE_URL}/devices")
        devices = extract_devices(data)
        _LOGGER.debug("Retrieved %d devices from Skyport API", len(devices))
        return devices

    async def discover_device_id(self) -> str:
        """Pick the first thermostat on the account.

        Raises:
            DeviceError: If the account has no thermostat.

        """
        devices = await self.get_devices()
        if not devices:
            error_msg = "No thermostat found on the Skyport account"
            raise DeviceError(error_msg)
        for device in devices:
            _LOGGER.info("Found thermostat id=%s name=%s", device.id, device.name)
        self.device_id = devices[0].id
        if self._session is not None:
            self._session.device_id = self.device_id
        _LOGGER.info("Using %r as the thermostat", devices[0].name)
        return self.device_id

    async def get_state(self, device_id: str) -> ThermostatState:
        """Read mode and setpoints of a thermostat.

        Raises:
            DeviceError: If the device id is unknown.
            TransportError: On network failure after retries.

        """
        data = await self.execute("GET", f"{SKYPORT_BASE_URL}/deviceData/{device_id}")
        if not isinstance(data, dict):
            error_msg = f"Unexpected device data for {device_id}"
            raise DeviceError(error_msg)
        state = extract_state(data)
        self._bounds[device_id] = (state.setpoint_minimum, state.setpoint_maximum)
        _LOGGER.debug("Thermostat %s state: %s", device_id, state)
        return state

    async def get_mode(self, device_id: str) -> str:
        """Return the operating mode (off, heat, cool, auto or unsupported)."""
        return (await self.get_state(device_id)).mode

    async def get_current_setpoint(self, device_id: str, kind: str | None = None) -> float:
        """Return the active setpoint.

        Args:
            device_id: Thermostat identifier.
            kind: ``heat`` or ``cool``; when omitted the setpoint matching
                the current mode is returned (heat for auto).

        """
        state = await self.get_state(device_id)
        if kind is None:
            kind = SETPOINT_COOL if state.mode == MODE_COOL else SETPOINT_HEAT
        return state.setpoint(kind)

    async def set_setpoint(self, device_id: str, value: float, kind: str) -> None:
        """Write a new heat or cool setpoint.

        Raises:
            ValidationError: If the value is outside the range the vendor
                reported or the vendor rejects it.
            TransportError: On network failure after retries.

        """
        if kind not in SKYPORT_SETPOINT_FIELDS:
            error_msg = f"Unknown setpoint kind: {kind}"
            raise ValidationError(error_msg)

        minimum, maximum = self._bounds.get(device_id, (None, None))
        if (minimum is not None and value < minimum) or (
            maximum is not None and value > maximum
        ):
            error_msg = (
                f"Setpoint {value} outside thermostat range [{minimum}, {maximum}]"
            )
            raise ValidationError(error_msg)

        payload = build_setpoint_payload(kind, value, self._override_duration)
        _LOGGER.info("Setting %s setpoint of %s to %s", kind, device_id, value)
        try:
            await self.execute(
                "PUT", f"{SKYPORT_BASE_URL}/deviceData/{device_id}", json=payload
            )
        except ValidationError:
            _LOGGER.warning("Skyport rejected %s setpoint %s", kind, value)
            raise
