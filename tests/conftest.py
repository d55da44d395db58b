"""Pytest configuration and fixtures for thermobridge tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from thermobridge.config import Config
from thermobridge.retry import RetryPolicy

SENSOR_DEVICE_ID = "1234"
THERMOSTAT_DEVICE_ID = "23334be2-f495-4c1a-8b60-37ef44cd783b"


class FakeClock:
    """Settable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Fixture providing a clock shortly after the sample sensor data."""
    return FakeClock(datetime(2022, 1, 2, 6, 40, tzinfo=UTC))


@pytest.fixture
def fast_retry_policy() -> RetryPolicy:
    """Fixture providing a retry policy that never sleeps."""
    return RetryPolicy(attempts=2, backoff_factor=0.0, max_backoff=0.0, timeout=1.0)


@pytest.fixture
def config_data() -> dict[str, Any]:
    """Fixture providing a minimal valid configuration mapping."""
    return {
        "email": "daikin@example.com",
        "password": "secret",
        "awair_token": "awair-token",
        "sensor_device_id": SENSOR_DEVICE_ID,
        "desired_temperature": 23.5,
    }


@pytest.fixture
def sample_login_response() -> dict[str, Any]:
    """Fixture providing a sample Skyport login response."""
    return {
        "accessToken": "access-1",
        "accessTokenExpiresIn": 3600,
        "refreshToken": "refresh-1",
        "tokenType": "Bearer",
    }


@pytest.fixture
def sample_refresh_response() -> dict[str, Any]:
    """Fixture providing a sample Skyport token refresh response."""
    return {
        "accessToken": "access-2",
        "accessTokenExpiresIn": 3600,
        "tokenType": "Bearer",
    }


@pytest.fixture
def sample_devices_response() -> list[dict[str, Any]]:
    """Fixture providing a sample Skyport device list."""
    return [
        {
            "id": THERMOSTAT_DEVICE_ID,
            "locationId": "718b63d9-359f-471f-96d9-0923da5773e1",
            "name": "Main Room",
            "model": "ONEPLUS",
            "firmwareVersion": "2.6.5",
        },
    ]


@pytest.fixture
def sample_device_data() -> dict[str, Any]:
    """Fixture providing a sample Skyport deviceData response in heat mode."""
    return {
        "mode": 1,
        "hspHome": 21.0,
        "cspHome": 26.0,
        "tempIndoor": 22.5,
        "setpointMinimum": 10.0,
        "setpointMaximum": 32.0,
    }


def _air_record(timestamp: str, temp: float) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "score": 95.0,
        "sensors": [
            {"comp": "pm25", "value": 3.7},
            {"comp": "humid", "value": 41.9},
            {"comp": "temp", "value": temp},
            {"comp": "co2", "value": 588.4},
        ],
        "indices": [{"comp": "temp", "value": 0.0}],
    }


@pytest.fixture
def sample_air_data() -> dict[str, Any]:
    """Fixture providing four 15-minute Awair samples averaging about 24.3."""
    return {
        "data": [
            _air_record("2022-01-02T06:30:00.000Z", 24.175666745503744),
            _air_record("2022-01-02T06:15:00.000Z", 24.310227264057506),
            _air_record("2022-01-02T06:00:00.000Z", 24.41155548095703),
            _air_record("2022-01-02T05:45:00.000Z", 24.31588887108697),
        ],
    }


@pytest.fixture
def make_config(config_data: dict[str, Any]):
    """Fixture providing a factory for validated Config objects."""

    def _make(**overrides: Any) -> Config:
        return Config.from_dict({**config_data, **overrides})

    return _make
