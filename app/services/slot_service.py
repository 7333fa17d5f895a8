from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.appointment import Appointment
from app.models.client import Client
from app.models.scheduling import AppointmentStatus, BookedSlot, TimeRange
from app.services.conflict_service import find_conflict

DEFAULT_SLOT_LABEL = "Appointment"


def _to_booked_slot(appointment: Appointment, client_name: str | None) -> BookedSlot:
    start = appointment.start_time
    end = appointment.end_time
    # Same-day ranges only; anything running past midnight is cut at end of day
    end_time = end.time() if end.date() == start.date() else time.max
    return BookedSlot(
        date=start.date(),
        start_time=start.time(),
        end_time=end_time,
        label=appointment.title or client_name or DEFAULT_SLOT_LABEL,
        appointment_id=appointment.id,
    )


async def list_booked_slots(
    session: AsyncSession,
    practitioner_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[BookedSlot]:
    """Snapshot of the practitioner's non-cancelled bookings, ordered by start."""
    q = (
        select(Appointment, Client.name)
        .outerjoin(Client, Appointment.client_id == Client.id)
        .where(
            Appointment.user_id == practitioner_id,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        .order_by(Appointment.start_time, Appointment.id)
    )
    if from_date:
        q = q.where(Appointment.start_time >= datetime.combine(from_date, time.min))
    if to_date:
        q = q.where(Appointment.start_time < datetime.combine(to_date + timedelta(days=1), time.min))
    result = await session.execute(q)
    return [_to_booked_slot(a, name) for a, name in result.all()]


class SqlBookedSlotSource:
    """BookedSlotSource reading the appointments table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_booked_slots(self, practitioner_id: int) -> list[BookedSlot]:
        return await list_booked_slots(self._session, practitioner_id)


def _slot_ranges_for_date(d: date) -> list[TimeRange]:
    """Agenda grid for the given day, from agenda_start to agenda_end."""
    ranges: list[TimeRange] = []
    current = datetime.combine(d, settings.agenda_start)
    end = datetime.combine(d, settings.agenda_end)
    delta = timedelta(minutes=settings.slot_duration_minutes)
    while current + delta <= end:
        ranges.append(TimeRange(date=d, start=current.time(), end=(current + delta).time()))
        current += delta
    return ranges


async def get_available_slots_for_date(
    session: AsyncSession, practitioner_id: int, d: date
) -> list[tuple[TimeRange, BookedSlot | None]]:
    """Returns (slot, conflicting booking or None) for every grid slot of the day."""
    ranges = _slot_ranges_for_date(d)
    if not ranges:
        return []
    booked = await list_booked_slots(session, practitioner_id, from_date=d, to_date=d)
    return [(r, find_conflict(d, r, booked)) for r in ranges]
