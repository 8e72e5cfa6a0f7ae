"""
Injectable clock and the shop's regional timezone.

The shops operate on a fixed UTC-3 offset (Brasília time). The offset is not
DST-aware; deploying to a region that observes DST needs an IANA timezone
instead of a fixed offset.
"""

from typing import Protocol

import pendulum
from pendulum import DateTime

DEFAULT_UTC_OFFSET_HOURS = -3


def regional_timezone(utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS):
    """Fixed-offset timezone for the shop's region."""
    return pendulum.fixed_timezone(utc_offset_hours * 3600)


REGIONAL_TIMEZONE = regional_timezone()


class Clock(Protocol):
    """Source of "now" for past-time filtering and validation."""

    def now(self) -> DateTime:
        """Return the current instant in the shop's regional timezone."""


class SystemClock:
    """Reads the system clock, expressed in a fixed regional offset."""

    def __init__(self, utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS):
        self.timezone = regional_timezone(utc_offset_hours)

    def now(self) -> DateTime:
        return pendulum.now(self.timezone)


class FixedClock:
    """Always returns the same instant. Used by tests and replays."""

    def __init__(self, instant: DateTime):
        self._instant = instant

    def now(self) -> DateTime:
        return self._instant
