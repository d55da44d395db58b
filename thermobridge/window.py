"""Daily control window.

Outside the window the bridge leaves the thermostat alone. A window whose
end is earlier than its start wraps around midnight.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta

SECONDS_PER_DAY = 24 * 60 * 60
TIME_FORMAT = "%H:%M"


def parse_time(value: str) -> time:
    """Parse an ``HH:MM`` string."""
    return datetime.strptime(value, TIME_FORMAT).time()  # noqa: DTZ007


def _seconds(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


@dataclass(frozen=True)
class ControlWindow:
    """Time-of-day range during which the control loop is active."""

    start: time
    end: time

    @classmethod
    def parse(cls, start: str, end: str) -> ControlWindow:
        """Create from ``HH:MM`` strings."""
        return cls(start=parse_time(start), end=parse_time(end))

    @property
    def wraps_midnight(self) -> bool:
        """Return True if the window spans midnight (or the whole day)."""
        return self.start >= self.end

    def contains(self, moment: time) -> bool:
        """Return True if moment lies inside the window, bounds included."""
        if self.wraps_midnight:
            return moment <= self.end or self.start <= moment
        return self.start <= moment <= self.end

    def seconds_until_transition(self, moment: time) -> int:
        """Return the seconds until the window next opens or closes."""
        now = _seconds(moment)
        first, second = sorted((_seconds(self.start), _seconds(self.end)))
        if now < first:
            return first - now
        if now < second:
            return second - now
        return SECONDS_PER_DAY - (now - first)

    def delay_until_transition(self, moment: datetime) -> timedelta:
        """Return the wait until the next transition as a timedelta."""
        return timedelta(seconds=self.seconds_until_transition(moment.time()))
