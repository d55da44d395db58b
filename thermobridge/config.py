"""Configuration for thermobridge.

The configuration is a flat TOML table. It is validated with a voluptuous
schema and frozen into a ``Config`` instance before anything else starts.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import voluptuous as vol

from .api import ThermobridgeError
from .const import (
    CONF_ADJUSTMENT_POLICY,
    CONF_AWAIR_TOKEN,
    CONF_CONTROL_END,
    CONF_CONTROL_START,
    CONF_DESIRED_TEMPERATURE,
    CONF_EMAIL,
    CONF_MAX_READING_AGE,
    CONF_MAX_SETPOINT,
    CONF_MIN_SETPOINT,
    CONF_OVERRIDE_DURATION,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    CONF_PROPORTIONAL_GAIN,
    CONF_REQUEST_TIMEOUT,
    CONF_RETRY_ATTEMPTS,
    CONF_RETRY_BACKOFF_FACTOR,
    CONF_RETRY_MAX_BACKOFF,
    CONF_SENSOR_DEVICE_ID,
    CONF_SENSOR_DEVICE_TYPE,
    CONF_STEP_SIZE,
    CONF_THERMOSTAT_DEVICE_ID,
    CONF_TICK_TIMEOUT,
    CONF_TOLERANCE,
    DEFAULT_MAX_READING_AGE,
    DEFAULT_MAX_SETPOINT,
    DEFAULT_MIN_SETPOINT,
    DEFAULT_OVERRIDE_DURATION,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PROPORTIONAL_GAIN,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_MAX_BACKOFF,
    DEFAULT_SENSOR_DEVICE_TYPE,
    DEFAULT_STEP_SIZE,
    DEFAULT_TOLERANCE,
    POLICY_FIXED,
    POLICY_OFFSET,
    POLICY_PROPORTIONAL,
)
from .retry import RetryPolicy
from .window import ControlWindow, parse_time

_LOGGER = logging.getLogger(__name__)


class ConfigError(ThermobridgeError):
    """Configuration is missing or invalid."""


def _time_of_day(value: Any) -> str:
    try:
        parse_time(str(value))
    except ValueError as err:
        error_msg = f"expected HH:MM, got {value!r}"
        raise vol.Invalid(error_msg) from err
    return str(value)


def _temperature() -> vol.All:
    return vol.All(vol.Coerce(float), vol.Range(min=-50, max=100))


def _positive() -> vol.All:
    return vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))


def _check_bounds(data: dict[str, Any]) -> dict[str, Any]:
    if data[CONF_MIN_SETPOINT] >= data[CONF_MAX_SETPOINT]:
        error_msg = f"{CONF_MIN_SETPOINT} must be lower than {CONF_MAX_SETPOINT}"
        raise vol.Invalid(error_msg)
    return data


def _check_window(data: dict[str, Any]) -> dict[str, Any]:
    if (data[CONF_CONTROL_START] is None) != (data[CONF_CONTROL_END] is None):
        error_msg = f"{CONF_CONTROL_START} and {CONF_CONTROL_END} must be set together"
        raise vol.Invalid(error_msg)
    return data


CONFIG_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(CONF_EMAIL): vol.Email(),
            vol.Required(CONF_PASSWORD): vol.All(str, vol.Length(min=1)),
            vol.Required(CONF_AWAIR_TOKEN): vol.All(str, vol.Length(min=1)),
            vol.Required(CONF_SENSOR_DEVICE_ID): vol.Coerce(str),
            vol.Required(CONF_DESIRED_TEMPERATURE): _temperature(),
            vol.Optional(CONF_THERMOSTAT_DEVICE_ID, default=None): vol.Any(
                None, vol.Coerce(str)
            ),
            vol.Optional(
                CONF_SENSOR_DEVICE_TYPE, default=DEFAULT_SENSOR_DEVICE_TYPE
            ): str,
            vol.Optional(CONF_TOLERANCE, default=DEFAULT_TOLERANCE): vol.All(
                vol.Coerce(float), vol.Range(min=0)
            ),
            vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): vol.All(
                vol.Coerce(float), vol.Range(min=1)
            ),
            vol.Optional(CONF_MIN_SETPOINT, default=DEFAULT_MIN_SETPOINT): _temperature(),
            vol.Optional(CONF_MAX_SETPOINT, default=DEFAULT_MAX_SETPOINT): _temperature(),
            vol.Optional(CONF_STEP_SIZE, default=DEFAULT_STEP_SIZE): _positive(),
            vol.Optional(CONF_ADJUSTMENT_POLICY, default=POLICY_FIXED): vol.In(
                [POLICY_FIXED, POLICY_PROPORTIONAL, POLICY_OFFSET]
            ),
            vol.Optional(
                CONF_PROPORTIONAL_GAIN, default=DEFAULT_PROPORTIONAL_GAIN
            ): _positive(),
            vol.Optional(CONF_CONTROL_START, default=None): vol.Any(None, _time_of_day),
            vol.Optional(CONF_CONTROL_END, default=None): vol.Any(None, _time_of_day),
            vol.Optional(
                CONF_OVERRIDE_DURATION, default=DEFAULT_OVERRIDE_DURATION
            ): vol.All(vol.Coerce(int), vol.Range(min=1)),
            vol.Optional(CONF_MAX_READING_AGE, default=DEFAULT_MAX_READING_AGE): _positive(),
            vol.Optional(CONF_REQUEST_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT): _positive(),
            vol.Optional(CONF_RETRY_ATTEMPTS, default=DEFAULT_RETRY_ATTEMPTS): vol.All(
                vol.Coerce(int), vol.Range(min=0, max=10)
            ),
            vol.Optional(
                CONF_RETRY_BACKOFF_FACTOR, default=DEFAULT_RETRY_BACKOFF_FACTOR
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
            vol.Optional(
                CONF_RETRY_MAX_BACKOFF, default=DEFAULT_RETRY_MAX_BACKOFF
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
            vol.Optional(CONF_TICK_TIMEOUT, default=None): vol.Any(None, _positive()),
        },
        extra=vol.PREVENT_EXTRA,
    ),
    _check_bounds,
    _check_window,
)


@dataclass(frozen=True)
class Config:
    """Validated, immutable settings of one bridge."""

    email: str
    password: str
    awair_token: str
    sensor_device_id: str
    desired_temperature: float
    thermostat_device_id: str | None = None
    sensor_device_type: str = DEFAULT_SENSOR_DEVICE_TYPE
    tolerance: float = DEFAULT_TOLERANCE
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL
    min_setpoint: float = DEFAULT_MIN_SETPOINT
    max_setpoint: float = DEFAULT_MAX_SETPOINT
    step_size: float = DEFAULT_STEP_SIZE
    adjustment_policy: str = POLICY_FIXED
    proportional_gain: float = DEFAULT_PROPORTIONAL_GAIN
    control_start: str | None = None
    control_end: str | None = None
    override_duration_minutes: int = DEFAULT_OVERRIDE_DURATION
    max_reading_age_seconds: float = DEFAULT_MAX_READING_AGE
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    retry_max_backoff_seconds: float = DEFAULT_RETRY_MAX_BACKOFF
    tick_timeout_seconds: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Validate a raw mapping and build a Config.

        Raises:
            ConfigError: If the mapping does not match the schema.

        """
        try:
            validated = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as err:
            error_msg = f"Invalid configuration: {err}"
            raise ConfigError(error_msg) from err

        if validated[CONF_TICK_TIMEOUT] is None:
            validated[CONF_TICK_TIMEOUT] = validated[CONF_POLL_INTERVAL]

        config = cls(**validated)
        budget = config.retry_policy.budget_seconds()
        if budget > config.poll_interval_seconds:
            _LOGGER.warning(
                "Worst-case retry time of one call (%.0f s) exceeds the poll "
                "interval (%.0f s)",
                budget,
                config.poll_interval_seconds,
            )
        return config

    @property
    def retry_policy(self) -> RetryPolicy:
        """Return the retry policy for outbound calls."""
        return RetryPolicy(
            attempts=self.retry_attempts,
            backoff_factor=self.retry_backoff_factor,
            max_backoff=self.retry_max_backoff_seconds,
            timeout=self.request_timeout_seconds,
        )

    @property
    def control_window(self) -> ControlWindow | None:
        """Return the daily control window, if one is configured."""
        if self.control_start is None or self.control_end is None:
            return None
        return ControlWindow.parse(self.control_start, self.control_end)


def load_config(path: str | Path) -> Config:
    """Read and validate a TOML configuration file.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.

    """
    path = Path(path)
    try:
        with path.open("rb") as file:
            data = tomllib.load(file)
    except OSError as err:
        error_msg = f"Cannot read {path}: {err}"
        raise ConfigError(error_msg) from err
    except tomllib.TOMLDecodeError as err:
        error_msg = f"Cannot parse {path}: {err}"
        raise ConfigError(error_msg) from err

    _LOGGER.debug("Loaded configuration from %s", path)
    return Config.from_dict(data)
