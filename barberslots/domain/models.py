"""
Domain models for operating windows, bookings and slot queries.

Calendar dates are ``datetime.date`` and times of day are ``datetime.time``
(pendulum's ``Date``/``Time`` subclass them and are accepted everywhere).
Strings coming from forms, the database or the assistant are converted at the
boundary with ``parse_calendar_date`` / ``parse_local_time``.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInputError

MINUTES_PER_DAY = 24 * 60

# Duration assumed for stored bookings whose service duration is unknown
DEFAULT_BOOKING_DURATION_MINUTES = 30

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def parse_calendar_date(value: str | date) -> date:
    """
    Parse a ``YYYY-MM-DD`` string into a calendar date.

    Raises:
        InvalidInputError: If the string is not a real calendar date
    """
    if isinstance(value, DateTime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"Expected a date string, got {type(value).__name__}")

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        raise InvalidInputError(f"Invalid date format: '{value}' (expected YYYY-MM-DD)")

    year, month, day = (int(part) for part in match.groups())
    try:
        return pendulum.date(year, month, day)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid date: '{value}' ({exc})") from exc


def parse_local_time(value: str | time) -> time:
    """
    Parse ``HH:MM`` (or the database's ``HH:MM:SS``) into a time of day.

    Raises:
        InvalidInputError: If the string is not a valid time of day
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"Expected a time string, got {type(value).__name__}")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidInputError(f"Invalid time format: '{value}' (expected HH:MM)")

    hour, minute, second = match.groups()
    return time(int(hour), int(minute), int(second or 0))


def to_minutes(value: time) -> int:
    """Minutes since midnight, ignoring seconds."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Time of day for a minute offset; wraps past midnight."""
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _coerce_date(value: object, field_name: str) -> date:
    """
    Model-side date check: strings are parsed, anything but a plain date raises.

    A ``datetime`` is a ``date`` subclass but never compares equal to one, so
    it is refused rather than silently never matching.
    """
    if isinstance(value, str):
        return parse_calendar_date(value)
    if isinstance(value, datetime) or not isinstance(value, date):
        raise InvalidInputError(
            f"{field_name} must be a calendar date, got {type(value).__name__}: {value!r}"
        )
    return value


def _coerce_time(value: object, field_name: str) -> time:
    if isinstance(value, str):
        return parse_local_time(value)
    if not isinstance(value, time):
        raise InvalidInputError(
            f"{field_name} must be a time of day, got {type(value).__name__}: {value!r}"
        )
    return value


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_occupying(self) -> bool:
        """Only pending and confirmed bookings reserve time."""
        return self in OCCUPYING_STATUSES


OCCUPYING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


@dataclass(frozen=True)
class TimeRange:
    """
    Half-open interval ``[start_minute, end_minute)`` within one day.

    Invariant: start must be before end. An interval may run past midnight
    (end above 1440) when a booking starts late in the day.
    """
    start_minute: int
    end_minute: int

    def __post_init__(self):
        if self.start_minute >= self.end_minute:
            raise InvalidInputError(
                f"Start minute {self.start_minute} must be before end minute {self.end_minute}"
            )

    @classmethod
    def starting_at(cls, start: time, duration_minutes: int) -> "TimeRange":
        start_minute = to_minutes(start)
        return cls(start_minute=start_minute, end_minute=start_minute + duration_minutes)

    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, other: "TimeRange") -> bool:
        """Touching endpoints (one ends exactly when the other starts) do not overlap."""
        return self.start_minute < other.end_minute and self.end_minute > other.start_minute

    def __str__(self) -> str:
        return f"{format_time(from_minutes(self.start_minute))} - {format_time(from_minutes(self.end_minute))}"


@dataclass(frozen=True)
class OperatingWindow:
    """
    A shop's single daily open/close pair.

    A window that does not open before it closes is a misconfiguration; it is
    still representable and simply yields no slots.
    """
    opens: time
    closes: time

    def __post_init__(self):
        # Slots are minute-aligned; seconds are dropped like to_minutes does.
        for name in ("opens", "closes"):
            value = _coerce_time(getattr(self, name), name)
            object.__setattr__(self, name, value.replace(second=0, microsecond=0))

    def is_open(self) -> bool:
        return self.opens < self.closes

    def contains(self, start: time) -> bool:
        """Whether a slot may start at ``start`` (opens inclusive, closes exclusive)."""
        return self.opens <= start < self.closes

    def __str__(self) -> str:
        return f"{format_time(self.opens)} - {format_time(self.closes)}"


@dataclass(frozen=True)
class ServiceSpec:
    """A bookable service from the catalog."""
    id: str
    duration_minutes: int
    name: str = ""
    price: float = 0.0

    def __post_init__(self):
        if not self.id:
            raise InvalidInputError("Service id is required")
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Service '{self.id}' must have a positive duration, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Professional:
    id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class ExistingBooking:
    """
    A persisted booking as read from the booking store.

    The duration is the one captured when the booking was created, so later
    edits to the service do not move its end time.
    """
    professional_id: str
    date: date
    start_time: time
    duration_minutes: int
    status: BookingStatus = BookingStatus.CONFIRMED
    id: Optional[str] = None
    client_name: Optional[str] = None
    service_name: Optional[str] = None

    def __post_init__(self):
        if not self.professional_id:
            raise InvalidInputError("Booking must reference a professional")
        object.__setattr__(self, "date", _coerce_date(self.date, "Booking date"))
        object.__setattr__(self, "start_time", _coerce_time(self.start_time, "Booking start time"))
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Booking duration must be positive, got {self.duration_minutes}"
            )
        if not isinstance(self.status, BookingStatus):
            try:
                object.__setattr__(self, "status", BookingStatus(self.status))
            except ValueError as exc:
                raise InvalidInputError(f"Unknown booking status: {self.status!r}") from exc

    @property
    def is_occupying(self) -> bool:
        return self.status.is_occupying

    def time_range(self) -> TimeRange:
        return TimeRange.starting_at(self.start_time, self.duration_minutes)

    def end_time(self) -> time:
        return from_minutes(self.time_range().end_minute)


@dataclass(frozen=True)
class BookingProposal:
    """A slot a client has chosen and wants to book."""
    professional_id: str
    date: date
    start_time: time
    duration_minutes: int
    service_id: Optional[str] = None
    client_id: Optional[str] = None
    price: Optional[float] = None
    notes: str = ""
    status: BookingStatus = BookingStatus.PENDING

    def __post_init__(self):
        if not self.professional_id:
            raise InvalidInputError("Booking proposal requires a professional id")
        object.__setattr__(self, "date", _coerce_date(self.date, "Proposal date"))
        object.__setattr__(self, "start_time", _coerce_time(self.start_time, "Proposal start time"))
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Booking proposal duration must be positive, got {self.duration_minutes}"
            )
        if not BookingStatus(self.status).is_occupying:
            raise InvalidInputError(f"New bookings must be pending or confirmed, got {self.status}")

    def time_range(self) -> TimeRange:
        return TimeRange.starting_at(self.start_time, self.duration_minutes)


@dataclass(frozen=True)
class SlotQuery:
    """
    Input of the availability filter for one professional on one date.

    ``requested_duration_minutes`` of ``None`` selects the weaker exact-start
    conflict mode; ``exclude_booking_id`` lets an appointment being edited
    ignore itself.
    """
    professional_id: str
    date: date
    operating_window: OperatingWindow
    requested_duration_minutes: Optional[int]
    occupying_bookings: Sequence[ExistingBooking]
    now: DateTime
    exclude_booking_id: Optional[str] = None

    def __post_init__(self):
        if not self.professional_id:
            raise InvalidInputError("Slot query requires a professional id")
        object.__setattr__(self, "date", _coerce_date(self.date, "Query date"))
        if not isinstance(self.now, datetime):
            raise InvalidInputError(f"Query 'now' must be a datetime, got {type(self.now).__name__}")
        duration = self.requested_duration_minutes
        if duration is not None and duration < 0:
            raise InvalidInputError(f"Requested duration cannot be negative, got {duration}")


class ConflictMode(str, Enum):
    DURATION_AWARE = "duration_aware"
    EXACT_START = "exact_start"


@dataclass
class AvailabilityResult:
    """Bookable start times plus what was removed and how conflicts were detected."""
    slots: List[time]
    conflict_mode: ConflictMode = ConflictMode.DURATION_AWARE
    past_excluded: List[time] = field(default_factory=list)
    occupied_excluded: List[time] = field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        """True when bookings were only compared by exact start time."""
        return self.conflict_mode is ConflictMode.EXACT_START

    def is_available(self, start: time) -> bool:
        return any(to_minutes(slot) == to_minutes(start) for slot in self.slots)
