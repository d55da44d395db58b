"""Data models for thermobridge."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from .const import SETPOINT_HEAT


@dataclass
class AccessToken:
    """Represents an access token with its expiration timestamp."""

    token: str
    expire_at: datetime


@dataclass
class ThermostatSession:
    """Authenticated state held by the thermostat client."""

    access_token: AccessToken
    refresh_token: str
    device_id: str | None = None

    @property
    def expire_at(self) -> datetime:
        """Return the access token expiry."""
        return self.access_token.expire_at


@dataclass(frozen=True)
class SensorSession:
    """Static bearer credentials for the sensor vendor."""

    token: str
    device_type: str
    device_id: str


@dataclass(frozen=True)
class ThermostatDevice:
    """A thermostat registered on the vendor account."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Reading:
    """A single temperature sample from the remote sensor."""

    timestamp: datetime
    temperature: float


@dataclass(frozen=True, slots=True)
class ThermostatState:
    """Represents the current operating state reported by the thermostat API."""

    mode: str
    heat_setpoint: float
    cool_setpoint: float
    indoor_temperature: float | None = None
    setpoint_minimum: float | None = None
    setpoint_maximum: float | None = None

    def setpoint(self, kind: str) -> float:
        """Return the heat or cool setpoint."""
        return self.heat_setpoint if kind == SETPOINT_HEAT else self.cool_setpoint


@dataclass(frozen=True, slots=True)
class SetpointDecision:
    """A setpoint change derived from one reading."""

    kind: str
    previous: float
    value: float
    reading: Reading


class TickOutcome(StrEnum):
    """Result category of one control tick."""

    APPLIED = "applied"
    NO_OP = "no_op"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class TickResult:
    """What one tick of the control loop did and why."""

    outcome: TickOutcome
    reason: str
    stage: str | None = None
    reading: Reading | None = None
    decision: SetpointDecision | None = None
