"""Appointment form state as an explicit reducer.

Every edit is a ``DraftEvent``; ``reduce`` returns the next draft with the
dependent fields (default end time, price, financial-record toggle,
recurrence block) re-derived inline. Live editing never raises for bad text
input: an unparsable time, date or number clears the field and
``validate_draft`` reports it on submit.
"""

from collections.abc import Callable, Iterable
from datetime import date, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.scheduling import (
    AppointmentDraft,
    AppointmentKind,
    BookedSlot,
    Cadence,
    ClientInfo,
    RecurrenceSpec,
    SessionKind,
    add_minutes,
    parse_time_of_day,
)
from app.services.conflict_service import conflict_warning
from app.services.ports import ClientDirectory
from app.services.recurrence_service import MAX_OCCURRENCES


DEFAULT_OCCURRENCE_COUNT = 4
DEFAULT_SESSION_MINUTES = 60

_BOOL = TypeAdapter(bool)


class DraftField(str, Enum):
    SESSION_KIND = "session_kind"
    CLIENT_ID = "client_id"
    DATE = "date"
    START_TIME = "start_time"
    END_TIME = "end_time"
    APPOINTMENT_KIND = "appointment_kind"
    VIDEO_LINK = "video_link"
    PRICE = "price"
    CREATES_FINANCIAL_RECORD = "creates_financial_record"
    CADENCE = "cadence"
    OCCURRENCE_COUNT = "occurrence_count"
    TITLE = "title"
    DESCRIPTION = "description"
    COLOR = "color"


class DraftEvent(BaseModel):
    """One field edit. ``client`` carries the directory lookup for client selections."""

    model_config = ConfigDict(frozen=True)

    field: DraftField
    value: Any = None
    client: ClientInfo | None = None


def _optional_time(value: Any) -> time | None:
    if value is None or value == "":
        return None
    try:
        return parse_time_of_day(value)
    except (TypeError, ValueError):
        return None


def _optional_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_bool(value: Any) -> bool | None:
    # "false", "0", "off" and friends parse the way pydantic parses form input
    try:
        return _BOOL.validate_python(value)
    except ValueError:
        return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _on_session_kind(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    kind = SessionKind(event.value)
    changes: dict[str, Any] = {"session_kind": kind}
    if kind == SessionKind.PERSONAL:
        changes.update(client_id=None, price=None, price_touched=False, creates_financial_record=False)
    elif draft.is_personal:
        changes["creates_financial_record"] = True
    if kind == SessionKind.RECURRING:
        if draft.recurrence is None:
            changes["recurrence"] = RecurrenceSpec(occurrence_count=DEFAULT_OCCURRENCE_COUNT)
    else:
        changes["recurrence"] = None
    return changes


def _on_client(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    if draft.is_personal:
        return {}
    client_id = _optional_int(event.value)
    changes: dict[str, Any] = {"client_id": client_id}
    client = event.client
    if (
        client is not None
        and client.id == client_id
        and client.default_session_price is not None
        and not draft.price_touched
    ):
        changes["price"] = str(client.default_session_price)
    return changes


def _on_date(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"date": _optional_date(event.value)}


def _on_start_time(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"start_time": _optional_time(event.value)}


def _on_end_time(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"end_time": _optional_time(event.value), "end_time_touched": True}


def _on_appointment_kind(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"appointment_kind": AppointmentKind(event.value)}


def _on_video_link(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"video_link": _optional_text(event.value)}


def _on_price(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    if draft.is_personal:
        return {}
    return {"price": _optional_text(event.value), "price_touched": True}


def _on_financial_record(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    if draft.is_personal:
        return {}
    flag = _optional_bool(event.value)
    if flag is None:
        return {}
    return {"creates_financial_record": flag}


def _on_cadence(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    if not draft.is_recurring:
        return {}
    cadence = Cadence(event.value) if event.value else None
    recurrence = draft.recurrence or RecurrenceSpec()
    return {"recurrence": recurrence.model_copy(update={"cadence": cadence})}


def _on_occurrence_count(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    if not draft.is_recurring:
        return {}
    recurrence = draft.recurrence or RecurrenceSpec()
    return {"recurrence": recurrence.model_copy(update={"occurrence_count": _optional_int(event.value)})}


def _on_title(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"title": _optional_text(event.value)}


def _on_description(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"description": _optional_text(event.value)}


def _on_color(draft: AppointmentDraft, event: DraftEvent) -> dict[str, Any]:
    return {"color": _optional_text(event.value) or draft.color}


_REDUCERS: dict[DraftField, Callable[[AppointmentDraft, DraftEvent], dict[str, Any]]] = {
    DraftField.SESSION_KIND: _on_session_kind,
    DraftField.CLIENT_ID: _on_client,
    DraftField.DATE: _on_date,
    DraftField.START_TIME: _on_start_time,
    DraftField.END_TIME: _on_end_time,
    DraftField.APPOINTMENT_KIND: _on_appointment_kind,
    DraftField.VIDEO_LINK: _on_video_link,
    DraftField.PRICE: _on_price,
    DraftField.CREATES_FINANCIAL_RECORD: _on_financial_record,
    DraftField.CADENCE: _on_cadence,
    DraftField.OCCURRENCE_COUNT: _on_occurrence_count,
    DraftField.TITLE: _on_title,
    DraftField.DESCRIPTION: _on_description,
    DraftField.COLOR: _on_color,
}


def reduce(
    draft: AppointmentDraft,
    event: DraftEvent,
    *,
    session_minutes: int = DEFAULT_SESSION_MINUTES,
) -> AppointmentDraft:
    """Apply one field edit and re-derive the fields that depend on it."""
    changes = _REDUCERS[event.field](draft, event)
    start = changes.get("start_time")
    if event.field == DraftField.START_TIME and start is not None and not draft.end_time_touched:
        changes["end_time"] = add_minutes(start, session_minutes)
    return draft.model_copy(update=changes)


def normalize(draft: AppointmentDraft) -> AppointmentDraft:
    """Enforce the session-kind invariants on a draft built outside the reducer."""
    changes: dict[str, Any] = {}
    if draft.is_personal:
        changes.update(client_id=None, price=None, creates_financial_record=False)
    if not draft.is_recurring and draft.recurrence is not None:
        changes["recurrence"] = None
    return draft.model_copy(update=changes) if changes else draft


def parse_price(price: str) -> Decimal:
    try:
        value = Decimal(price.replace(",", ".").strip())
    except InvalidOperation:
        raise ValidationError("price", f"Invalid amount: {price!r}") from None
    if not value.is_finite() or value < 0:
        raise ValidationError("price", f"Invalid amount: {price!r}")
    return value


def validate_draft(draft: AppointmentDraft) -> AppointmentDraft:
    """Return the normalized draft, or raise ``ValidationError`` naming the first bad field."""
    draft = normalize(draft)
    if not draft.is_personal and draft.client_id is None:
        raise ValidationError("client_id", "A client is required unless the appointment is personal")
    if draft.date is None:
        raise ValidationError("date", "A date is required")
    if draft.start_time is None:
        raise ValidationError("start_time", "A start time is required")
    if draft.end_time is None:
        raise ValidationError("end_time", "An end time is required")
    if draft.end_time <= draft.start_time:
        raise ValidationError("end_time", "End time must be after start time")
    if (
        not draft.is_personal
        and draft.appointment_kind == AppointmentKind.REMOTE
        and not (draft.video_link or "").strip()
    ):
        raise ValidationError("video_link", "A video call link is required for remote appointments")
    if draft.is_recurring:
        recurrence = draft.recurrence
        if recurrence is None or recurrence.cadence is None:
            raise ValidationError("recurrence.cadence", "A recurrence cadence is required")
        count = recurrence.occurrence_count
        if count is None:
            raise ValidationError("recurrence.occurrence_count", "An occurrence count is required")
        if not 1 <= count <= MAX_OCCURRENCES:
            raise ValidationError(
                "recurrence.occurrence_count", f"Occurrence count must be between 1 and {MAX_OCCURRENCES}"
            )
    if not draft.is_personal and draft.creates_financial_record and not (draft.price or "").strip():
        raise ValidationError("price", "A price is required when a financial record is created")
    if draft.price is not None:
        parse_price(draft.price)
    return draft


class AppointmentFormState:
    """A draft plus its live single-slot conflict warning.

    Owns the draft for one edit session; ``booked_slots`` is the caller's
    snapshot and is only replaced through ``refresh_booked_slots``.
    """

    def __init__(
        self,
        selected_date: date | None,
        booked_slots: Iterable[BookedSlot] = (),
        client_directory: ClientDirectory | None = None,
        *,
        selected_time: str | time | None = None,
        session_minutes: int | None = None,
    ) -> None:
        self._session_minutes = session_minutes or settings.default_session_minutes
        start = parse_time_of_day(selected_time) if selected_time else settings.default_start_time
        self._draft = AppointmentDraft(
            date=selected_date,
            start_time=start,
            end_time=add_minutes(start, self._session_minutes),
            color=settings.default_color,
        )
        self._booked_slots = list(booked_slots)
        self._clients = client_directory
        self.conflict_warning: str | None = None
        self._recompute_warning()

    @property
    def draft(self) -> AppointmentDraft:
        return self._draft

    def dispatch(self, event: DraftEvent) -> AppointmentDraft:
        if event.field == DraftField.CLIENT_ID and event.client is None and self._clients is not None:
            client_id = _optional_int(event.value)
            if client_id is not None:
                event = event.model_copy(update={"client": self._clients.get_client(client_id)})
        self._draft = reduce(self._draft, event, session_minutes=self._session_minutes)
        self._recompute_warning()
        return self._draft

    def set(self, field: DraftField | str, value: Any) -> AppointmentDraft:
        return self.dispatch(DraftEvent(field=DraftField(field), value=value))

    def refresh_booked_slots(self, booked_slots: Iterable[BookedSlot]) -> None:
        self._booked_slots = list(booked_slots)
        self._recompute_warning()

    def submit(self) -> AppointmentDraft:
        return validate_draft(self._draft)

    def _recompute_warning(self) -> None:
        # Recurring drafts are checked occurrence by occurrence at submit time
        if self._draft.is_recurring:
            self.conflict_warning = None
            return
        candidate = self._draft.time_range()
        if candidate is None:
            self.conflict_warning = None
            return
        self.conflict_warning = conflict_warning(candidate.date, candidate, self._booked_slots)
