"""thermobridge: steer a cloud thermostat by a remote room sensor."""

from __future__ import annotations

import asyncio
import logging

from .api import AuthError, DeviceError, ThermobridgeError, TransportError, ValidationError
from .awair import AwairClient
from .config import Config, ConfigError, load_config
from .engine import ControlEngine
from .policy import create_policy
from .retry import RetryPolicy, create_session_client
from .skyport import SkyportClient

__all__ = [
    "AuthError",
    "AwairClient",
    "Config",
    "ConfigError",
    "ControlEngine",
    "DeviceError",
    "RetryPolicy",
    "SkyportClient",
    "ThermobridgeError",
    "TransportError",
    "ValidationError",
    "async_run",
    "async_setup_engine",
    "load_config",
]

_LOGGER = logging.getLogger(__name__)


async def async_setup_engine(
    config: Config,
    thermostat: SkyportClient,
    sensor: AwairClient,
) -> ControlEngine:
    """Authenticate, resolve the thermostat and build the engine.

    Raises:
        AuthError: If the thermostat credentials are rejected. This is
            fatal: nothing can run without a session.

    """
    await thermostat.authenticate()

    device_id = thermostat.device_id or await thermostat.discover_device_id()

    policy = create_policy(
        config.adjustment_policy, config.step_size, config.proportional_gain
    )
    window = config.control_window
    if window is not None:
        _LOGGER.info(
            "Controlling between %s and %s",
            config.control_start,
            config.control_end,
        )
    _LOGGER.info(
        "Keeping sensor %s at %.1f (+/- %.1f) via thermostat %s, %s policy",
        config.sensor_device_id,
        config.desired_temperature,
        config.tolerance,
        device_id,
        config.adjustment_policy,
    )
    return ControlEngine(config, sensor, thermostat, device_id, policy, window=window)


async def _async_setup_until_ready(
    config: Config,
    thermostat: SkyportClient,
    sensor: AwairClient,
    stop_event: asyncio.Event,
    *,
    once: bool,
) -> ControlEngine | None:
    """Set up the engine, retrying every poll interval on non-auth errors.

    Returns None if setup is abandoned: in once mode after the first
    failure, otherwise when stop_event is set while waiting.
    """
    while True:
        try:
            return await async_setup_engine(config, thermostat, sensor)
        except AuthError:
            raise
        except ThermobridgeError as err:
            if once:
                _LOGGER.error(
                    "Setup failed, skipping the tick: %s: %s", type(err).__name__, err
                )
                return None
            _LOGGER.warning(
                "Setup failed, retrying in %.0f seconds: %s: %s",
                config.poll_interval_seconds,
                type(err).__name__,
                err,
            )

        try:
            await asyncio.wait_for(
                stop_event.wait(), timeout=config.poll_interval_seconds
            )
        except TimeoutError:
            continue
        _LOGGER.info("Stopped before setup completed")
        return None


async def async_run(
    config: Config,
    stop_event: asyncio.Event,
    *,
    once: bool = False,
) -> None:
    """Run the bridge until stop_event is set, or for a single tick.

    Setup failures other than ``AuthError`` (an unreachable vendor, no
    thermostat on the account) are retried every poll interval; in once
    mode the tick is skipped instead.

    Raises:
        AuthError: On startup authentication failure or when a vendor keeps
            rejecting credentials.

    """
    _LOGGER.info("Setting up thermobridge")
    session = create_session_client(config.retry_policy)
    try:
        thermostat = SkyportClient(
            session,
            config.email,
            config.password,
            device_id=config.thermostat_device_id,
            override_duration=config.override_duration_minutes,
        )
        sensor = AwairClient(
            session,
            config.awair_token,
            config.sensor_device_id,
            device_type=config.sensor_device_type,
            max_reading_age=config.max_reading_age_seconds,
        )
        engine = await _async_setup_until_ready(
            config, thermostat, sensor, stop_event, once=once
        )
        if engine is None:
            return
        if once:
            await engine.run_once()
        else:
            await engine.run_forever(stop_event)
    finally:
        await session.aclose()
        _LOGGER.info("Closed thermobridge HTTP session")
