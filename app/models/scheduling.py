"""Value types of the scheduling core.

These are plain pydantic models, never tables. ``datetime`` is imported as a
module because several models carry a field literally named ``date``.
"""

import datetime as dt
import re
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_COLOR = "#8B5CF6"
MINUTES_PER_DAY = 24 * 60

_TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class SessionKind(str, Enum):
    SINGLE = "single"
    RECURRING = "recurring"
    PERSONAL = "personal"  # no client, no billing


class AppointmentKind(str, Enum):
    IN_PERSON = "in_person"
    REMOTE = "remote"


class Cadence(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


def parse_time_of_day(value: str | dt.time) -> dt.time:
    """Parse ``"HH:MM"`` into a minute-precision ``time``."""
    if isinstance(value, dt.time):
        if value.second or value.microsecond:
            raise ValueError(f"Time of day must have minute precision: {value}")
        return value.replace(tzinfo=None)
    match = _TIME_OF_DAY_RE.match(value.strip())
    if not match:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time of day out of range: {value!r}")
    return dt.time(hour, minute)


def format_time_of_day(value: dt.time) -> str:
    return value.strftime("%H:%M")


def add_minutes(value: dt.time, minutes: int) -> dt.time:
    """Shift a time of day, wrapping around midnight within the same day."""
    total = (value.hour * 60 + value.minute + minutes) % MINUTES_PER_DAY
    return dt.time(total // 60, total % 60)


def _overlaps(a_start: dt.time, a_end: dt.time, b_start: dt.time, b_end: dt.time) -> bool:
    # Half-open intervals: touching endpoints do not intersect
    return a_start < b_end and b_start < a_end


class TimeRange(BaseModel):
    """``[start, end)`` on a single calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    start: dt.time
    end: dt.time

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeRange":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    def overlaps(self, other: "TimeRange") -> bool:
        if self.date != other.date:
            return False
        return _overlaps(self.start, self.end, other.start, other.end)

    @property
    def start_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.start)

    @property
    def end_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.end)


class BookedSlot(BaseModel):
    """An already committed appointment, used only for overlap comparisons."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    start_time: dt.time
    end_time: dt.time
    label: str
    appointment_id: int | None = None

    def overlaps(self, candidate: TimeRange) -> bool:
        if self.date != candidate.date:
            return False
        return _overlaps(self.start_time, self.end_time, candidate.start, candidate.end)


class ClientInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    default_session_price: Decimal | None = None


class RecurrenceSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    cadence: Cadence | None = None
    occurrence_count: int | None = Field(default=None, ge=1, le=52)


class AppointmentDraft(BaseModel):
    """In-progress form state. Immutable: every edit produces a new draft."""

    model_config = ConfigDict(frozen=True)

    session_kind: SessionKind = SessionKind.SINGLE
    client_id: int | None = None
    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    appointment_kind: AppointmentKind = AppointmentKind.IN_PERSON
    video_link: str | None = None
    price: str | None = None
    creates_financial_record: bool = True
    recurrence: RecurrenceSpec | None = None
    title: str | None = None
    description: str | None = None
    color: str = DEFAULT_COLOR
    # Edit-session bookkeeping: which derived fields the user typed explicitly
    end_time_touched: bool = False
    price_touched: bool = False

    @property
    def is_personal(self) -> bool:
        return self.session_kind == SessionKind.PERSONAL

    @property
    def is_recurring(self) -> bool:
        return self.session_kind == SessionKind.RECURRING

    def time_range(self) -> TimeRange | None:
        """The candidate slot, or None while date/times are missing or inverted."""
        if self.date is None or self.start_time is None or self.end_time is None:
            return None
        if self.end_time <= self.start_time:
            return None
        return TimeRange(date=self.date, start=self.start_time, end=self.end_time)


class RecurrenceConflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    occurrence_date: dt.date
    conflicting_slot: BookedSlot


class RecurrenceResolution(BaseModel):
    """Confirmation payload for a recurring draft: every date plus the ones that collide."""

    model_config = ConfigDict(frozen=True)

    occurrences: list[dt.date]
    conflicts: list[RecurrenceConflict] = []

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)
