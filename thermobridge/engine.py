"""Control engine for thermobridge.

Every tick reads the remote sensor and the thermostat, decides whether the
thermostat setpoint has to move, and writes at most one new setpoint.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from .api import AuthError, ThermobridgeError, TransportError, ValidationError
from .const import (
    MODE_AUTO,
    MODE_COOL,
    MODE_HEAT,
    SETPOINT_COOL,
    SETPOINT_HEAT,
)
from .models import (
    Reading,
    SetpointDecision,
    ThermostatState,
    TickOutcome,
    TickResult,
)
from .policy import AdjustmentPolicy, SetpointInputs, clamp

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import Config
    from .window import ControlWindow

_LOGGER = logging.getLogger(__name__)

STAGE_FETCH = "fetch"
STAGE_SENSOR = "sensor.get_temperature"
STAGE_THERMOSTAT = "thermostat.get_state"
STAGE_APPLY = "thermostat.set_setpoint"
TRANSITION_SLACK = timedelta(seconds=15)


class SensorSource(Protocol):
    """What the engine needs from the sensor client."""

    async def get_temperature(self, device_id: str | None = None) -> Reading: ...


class ThermostatTarget(Protocol):
    """What the engine needs from the thermostat client."""

    async def get_state(self, device_id: str) -> ThermostatState: ...

    async def set_setpoint(self, device_id: str, value: float, kind: str) -> None: ...


def setpoint_kind(mode: str, delta: float) -> str | None:
    """Pick the setpoint an adjustment in this mode and direction may touch.

    Returns None when the mode does not allow adjusting (off or unsupported).
    """
    if mode == MODE_HEAT:
        return SETPOINT_HEAT
    if mode == MODE_COOL:
        return SETPOINT_COOL
    if mode == MODE_AUTO:
        return SETPOINT_HEAT if delta > 0 else SETPOINT_COOL
    return None


def _format_bound(value: float | None) -> str:
    return "unknown" if value is None else f"{value:.2f}"


class ControlEngine:
    """Drive the periodic fetch-decide-apply loop."""

    def __init__(
        self,
        config: Config,
        sensor: SensorSource,
        thermostat: ThermostatTarget,
        thermostat_device_id: str,
        policy: AdjustmentPolicy,
        *,
        window: ControlWindow | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._sensor = sensor
        self._thermostat = thermostat
        self._device_id = thermostat_device_id
        self._policy = policy
        self._window = window
        self._now = now
        self._last_applied: SetpointDecision | None = None

    @property
    def last_applied(self) -> SetpointDecision | None:
        """Return the most recent setpoint written by this engine."""
        return self._last_applied

    async def run_once(self) -> TickResult:
        """Run one tick.

        Returns:
            What the tick did. Device, validation, transport and other API
            errors are reported as a skipped tick.

        Raises:
            AuthError: If either vendor rejects the credentials for good.

        """
        if self._window is not None and not self._window.contains(self._now().time()):
            return self._report(TickResult(TickOutcome.NO_OP, "outside control window"))

        fetched = await self._fetch()
        if isinstance(fetched, TickResult):
            return fetched

        reading, state = fetched
        result = self._decide(reading, state)
        if result.decision is not None:
            result = await self._apply(result.decision, state)
        return self._report(result)

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Run ticks until stop_event is set.

        Ticks never overlap; the wait between tick starts is the poll
        interval, shortened to the next control window transition.
        """
        interval = self._config.poll_interval_seconds
        while not stop_event.is_set():
            started = time.monotonic()
            try:
                await self.run_once()
            except AuthError:
                raise
            except Exception:
                _LOGGER.exception("Unexpected error during tick, continuing")

            delay = max(0.0, interval - (time.monotonic() - started))
            if self._window is not None:
                # Wake up just after the window opens or closes
                transition = self._window.delay_until_transition(self._now())
                delay = min(delay, (transition + TRANSITION_SLACK).total_seconds())
            _LOGGER.debug("Next tick in %.0f seconds", delay)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except TimeoutError:
                continue
        _LOGGER.info("Control loop stopped")

    async def _fetch(self) -> tuple[Reading, ThermostatState] | TickResult:
        timeout = self._config.tick_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                reading, state = await asyncio.gather(
                    self._sensor.get_temperature(),
                    self._thermostat.get_state(self._device_id),
                    return_exceptions=True,
                )
        except TimeoutError:
            error = TransportError(f"Reads did not finish within {timeout} seconds")
            return self._skip(STAGE_FETCH, error)

        results = ((STAGE_SENSOR, reading), (STAGE_THERMOSTAT, state))
        for _stage, value in results:
            if isinstance(value, AuthError):
                raise value
        for stage, value in results:
            if isinstance(value, ThermobridgeError):
                return self._skip(stage, value)
            if isinstance(value, BaseException):
                raise value
        return reading, state

    def _decide(self, reading: Reading, state: ThermostatState) -> TickResult:
        config = self._config
        delta = config.desired_temperature - reading.temperature

        kind = setpoint_kind(state.mode, delta)
        if kind is None:
            return TickResult(
                TickOutcome.NO_OP, f"thermostat mode is {state.mode}", reading=reading
            )

        if abs(delta) <= config.tolerance:
            return TickResult(TickOutcome.NO_OP, "within tolerance", reading=reading)

        last = self._last_applied
        if last is not None and last.reading == reading:
            return TickResult(
                TickOutcome.NO_OP, "reading already acted on", reading=reading
            )

        current = state.setpoint(kind)
        proposal = self._policy.propose(
            SetpointInputs(
                desired=config.desired_temperature,
                reading=reading.temperature,
                current=current,
                indoor=state.indoor_temperature,
            )
        )
        new_setpoint = clamp(proposal, config.min_setpoint, config.max_setpoint)

        if math.isclose(new_setpoint, current):
            return TickResult(
                TickOutcome.NO_OP,
                f"{kind} setpoint already at {current:.2f}",
                reading=reading,
            )
        if (new_setpoint - current) * delta < 0:
            return TickResult(
                TickOutcome.NO_OP,
                f"proposed {kind} setpoint {new_setpoint:.2f} moves away from target",
                reading=reading,
            )

        decision = SetpointDecision(
            kind=kind, previous=current, value=new_setpoint, reading=reading
        )
        return TickResult(
            TickOutcome.APPLIED, "adjusting", reading=reading, decision=decision
        )

    async def _apply(
        self, decision: SetpointDecision, state: ThermostatState
    ) -> TickResult:
        try:
            await self._thermostat.set_setpoint(
                self._device_id, decision.value, decision.kind
            )
        except AuthError:
            raise
        except ValidationError as err:
            _LOGGER.warning(
                "Thermostat refused %s setpoint %.2f: configured bounds "
                "min_setpoint=%.2f max_setpoint=%.2f, thermostat range [%s, %s]",
                decision.kind,
                decision.value,
                self._config.min_setpoint,
                self._config.max_setpoint,
                _format_bound(state.setpoint_minimum),
                _format_bound(state.setpoint_maximum),
            )
            return self._skip(STAGE_APPLY, err, reading=decision.reading)
        except ThermobridgeError as err:
            return self._skip(STAGE_APPLY, err, reading=decision.reading)

        self._last_applied = decision
        return TickResult(
            TickOutcome.APPLIED,
            f"{decision.kind} setpoint {decision.previous:.2f} -> {decision.value:.2f}",
            stage=STAGE_APPLY,
            reading=decision.reading,
            decision=decision,
        )

    def _skip(
        self, stage: str, err: ThermobridgeError, reading: Reading | None = None
    ) -> TickResult:
        _LOGGER.warning(
            "tick outcome=skipped stage=%s error=%s: %s",
            stage,
            type(err).__name__,
            err,
        )
        return TickResult(TickOutcome.SKIPPED, str(err), stage=stage, reading=reading)

    def _report(self, result: TickResult) -> TickResult:
        if result.outcome is TickOutcome.SKIPPED:
            return result
        _LOGGER.info(
            "tick outcome=%s reason=%r desired=%.2f reading=%s",
            result.outcome,
            result.reason,
            self._config.desired_temperature,
            f"{result.reading.temperature:.2f}" if result.reading else "-",
        )
        return result
