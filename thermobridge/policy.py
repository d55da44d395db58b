"""Setpoint adjustment policies.

A policy proposes the next setpoint from the current one and the gap
between the desired and the measured temperature. The engine clamps the
proposal to the configured bounds and ignores proposals that do not move
toward the desired temperature.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from .const import POLICY_FIXED, POLICY_OFFSET, POLICY_PROPORTIONAL


@dataclass(frozen=True, slots=True)
class SetpointInputs:
    """Everything a policy may look at for one decision."""

    desired: float
    reading: float
    current: float
    indoor: float | None = None

    @property
    def delta(self) -> float:
        """Desired minus measured temperature; positive when the room is cold."""
        return self.desired - self.reading


class AdjustmentPolicy(Protocol):
    """Shape of the adjustment function."""

    def propose(self, inputs: SetpointInputs) -> float:
        """Return the unclamped next setpoint."""


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Limit value to [minimum, maximum]."""
    return max(minimum, min(maximum, value))


def _round_to_step(value: float, step: float) -> float:
    return round(value / step) * step


@dataclass(frozen=True)
class FixedStepPolicy:
    """Move one step toward the desired temperature."""

    step: float

    def propose(self, inputs: SetpointInputs) -> float:
        return inputs.current + math.copysign(self.step, inputs.delta)


@dataclass(frozen=True)
class ProportionalPolicy:
    """Move by gain * delta, in whole steps and at least one step."""

    step: float
    gain: float = 1.0

    def propose(self, inputs: SetpointInputs) -> float:
        steps = max(1, round(abs(inputs.delta * self.gain) / self.step))
        return inputs.current + math.copysign(steps * self.step, inputs.delta)


@dataclass(frozen=True)
class OffsetPolicy:
    """Aim the thermostat at the desired temperature shifted by the sensor gap.

    If the thermostat reads 1 degree warmer than the remote room, the
    thermostat has to target 1 degree above the desired temperature.
    Without an indoor reading it falls back to a fixed step.
    """

    step: float

    def propose(self, inputs: SetpointInputs) -> float:
        if inputs.indoor is None:
            return FixedStepPolicy(self.step).propose(inputs)
        target = inputs.desired + (inputs.indoor - inputs.reading)
        return _round_to_step(target, self.step)


def create_policy(name: str, step: float, gain: float = 1.0) -> AdjustmentPolicy:
    """Build the policy named in the configuration.

    Raises:
        ValueError: If the name is unknown.

    """
    if name == POLICY_FIXED:
        return FixedStepPolicy(step)
    if name == POLICY_PROPORTIONAL:
        return ProportionalPolicy(step, gain)
    if name == POLICY_OFFSET:
        return OffsetPolicy(step)
    error_msg = f"Unknown adjustment policy: {name}"
    raise ValueError(error_msg)
