"""Sensor client for the Awair developer API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from .api import ApiError, AuthError, DeviceError, validate_response
from .const import (
    AWAIR_BASE_URL,
    AWAIR_READINGS_LIMIT,
    AWAIR_READINGS_PATH,
    AWAIR_TEMPERATURE_COMPONENT,
    DEFAULT_MAX_READING_AGE,
    DEFAULT_SENSOR_DEVICE_TYPE,
)
from .models import Reading, SensorSession
from .retry import translate_transport_errors, with_auth_refresh

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

_LOGGER = logging.getLogger(__name__)


def create_headers(token: str) -> dict[str, str]:
    """Create HTTP headers for Awair API requests."""
    return {
        "Accept": "application/json",
        "Authorization": f"Bearer {token}",
    }


def readings_url(device_type: str, device_id: str) -> str:
    """Return the 15-minute average air-data URL of a device."""
    return f"{AWAIR_BASE_URL}/{device_type}/{device_id}/{AWAIR_READINGS_PATH}"


def _parse_timestamp(value: str) -> datetime:
    timestamp = datetime.fromisoformat(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp


def extract_readings(data: dict[str, Any]) -> list[Reading]:
    """Extract temperature readings from an air-data response.

    Records without a temperature component are ignored.

    Args:
        data: API response data dictionary.

    Returns:
        Readings in the order the API returned them.

    Raises:
        ApiError: If a record is malformed.

    """
    readings = []
    try:
        for record in data.get("data", []):
            for sensor in record.get("sensors", []):
                if sensor.get("comp", "").lower() == AWAIR_TEMPERATURE_COMPONENT:
                    readings.append(
                        Reading(
                            timestamp=_parse_timestamp(record["timestamp"]),
                            temperature=float(sensor["value"]),
                        )
                    )
                    break
    except (AttributeError, KeyError, TypeError, ValueError) as err:
        error_msg = f"Malformed air-data response: {err}"
        raise ApiError(error_msg) from err
    return readings


def average_reading(readings: list[Reading]) -> Reading:
    """Average the temperatures, stamped with the newest timestamp."""
    temperature = sum(r.temperature for r in readings) / len(readings)
    newest = max(r.timestamp for r in readings)
    return Reading(timestamp=newest, temperature=temperature)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AwairClient:
    """Authenticated access to the Awair sensor API.

    The Awair token is static, so there is no session to renew: a rejected
    token is a misconfiguration and surfaces as ``AuthError``.
    """

    name = "sensor"

    def __init__(
        self,
        session: httpx.AsyncClient,
        token: str,
        device_id: str,
        *,
        device_type: str = DEFAULT_SENSOR_DEVICE_TYPE,
        max_reading_age: float = DEFAULT_MAX_READING_AGE,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._http = session
        self._session = SensorSession(
            token=token, device_type=device_type, device_id=device_id
        )
        self._max_reading_age = timedelta(seconds=max_reading_age)
        self._now = now

    @property
    def device_id(self) -> str:
        """Return the configured sensor identifier."""
        return self._session.device_id

    async def ensure_valid_session(self) -> None:
        """Nothing to do; the bearer token does not expire."""

    async def refresh(self) -> None:
        """Fail: a static token cannot be renewed."""
        error_msg = "Awair rejected the bearer token, check awair_token"
        raise AuthError(error_msg)

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
        response = await self._http.request(
            method,
            url,
            headers=create_headers(self._session.token),
            json=json,
            params=params,
        )
        return validate_response(response)

    async def get_temperature(self, device_id: str | None = None) -> Reading:
        """Return the latest temperature reading.

        Args:
            device_id: Sensor identifier; defaults to the configured one.

        Returns:
            The average of the recent 15-minute samples, stamped with the
            newest sample's time.

        Raises:
            DeviceError: If the sensor has no recent reading.
            TransportError: On network failure after retries.

        """
        device_id = device_id or self._session.device_id
        url = readings_url(self._session.device_type, device_id)
        data = await self.execute("GET", url, params={"limit": AWAIR_READINGS_LIMIT})

        readings = extract_readings(data or {})
        if not readings:
            error_msg = f"Sensor {device_id} returned no temperature readings"
            raise DeviceError(error_msg)

        reading = average_reading(readings)
        age = self._now() - reading.timestamp
        if age > self._max_reading_age:
            error_msg = (
                f"Sensor {device_id} reading is stale: last sample at "
                f"{reading.timestamp.isoformat()}"
            )
            raise DeviceError(error_msg)

        _LOGGER.debug(
            "Sensor %s: %.2f degrees from %d samples",
            device_id,
            reading.temperature,
            len(readings),
        )
        return reading
