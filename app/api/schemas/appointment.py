from datetime import date, datetime, time

from pydantic import BaseModel

from app.models.appointment import AppointmentPublic
from app.models.scheduling import AppointmentDraft
from app.services.form_state import DraftEvent


class SlotInfo(BaseModel):
    start: datetime
    end: datetime
    available: bool
    booked_label: str | None = None


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    slots: list[SlotInfo]


class FormEventsRequest(BaseModel):
    """Field edits replayed, in order, over a fresh draft for ``selected_date``."""

    selected_date: date | None = None
    selected_time: time | None = None
    events: list[DraftEvent] = []


class FormStateResponse(BaseModel):
    draft: AppointmentDraft
    conflict_warning: str | None = None


class BookAppointmentRequest(BaseModel):
    draft: AppointmentDraft
    # Required for recurring drafts once the occurrences and conflicts were shown
    confirmed: bool = False


class BookAppointmentResponse(BaseModel):
    appointments: list[AppointmentPublic]
    recurrence_group_id: str | None = None


class SeriesDeletedResponse(BaseModel):
    deleted: int
