import logging
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PersistenceError, ValidationError
from app.models.appointment import NO_RECURRENCE, Appointment
from app.models.payment import Payment
from app.models.scheduling import (
    AppointmentDraft,
    AppointmentKind,
    AppointmentStatus,
    PaymentStatus,
    RecurrenceConflict,
    RecurrenceResolution,
)
from app.services.conflict_service import find_conflict
from app.services.form_state import parse_price, validate_draft
from app.services.ports import AppointmentStore, BookedSlotSource, ClientDirectory
from app.services.recurrence_service import confirm_or_raise, resolve

logger = logging.getLogger(__name__)


def materialize(
    draft: AppointmentDraft, occurrences: Sequence[date], *, practitioner_id: int
) -> list[Appointment]:
    """One Appointment per occurrence date; recurring series share one group id."""
    if not occurrences:
        raise ValueError("materialize() needs at least one occurrence date")
    if not draft.is_recurring and list(occurrences) != [draft.date]:
        raise ValueError("A non-recurring draft books exactly its own date")
    group_id = uuid4().hex if draft.is_recurring else None
    recurrence = draft.recurrence if draft.is_recurring else None
    personal = draft.is_personal
    remote = draft.appointment_kind == AppointmentKind.REMOTE
    price = parse_price(draft.price) if draft.price and not personal else None
    return [
        Appointment(
            user_id=practitioner_id,
            client_id=None if personal else draft.client_id,
            title=draft.title,
            description=draft.description,
            start_time=datetime.combine(day, draft.start_time),
            end_time=datetime.combine(day, draft.end_time),
            status=AppointmentStatus.SCHEDULED.value,
            price=price,
            payment_status=PaymentStatus.PENDING.value,
            appointment_type=draft.appointment_kind.value,
            video_call_link=draft.video_link if remote and not personal else None,
            create_financial_record=draft.creates_financial_record and not personal,
            color=draft.color,
            session_type=draft.session_kind.value,
            recurrence_type=recurrence.cadence.value if recurrence else NO_RECURRENCE,
            recurrence_count=recurrence.occurrence_count if recurrence else 1,
            recurrence_group_id=group_id,
        )
        for day in occurrences
    ]


def _is_billable(appointment: Appointment) -> bool:
    return (
        appointment.create_financial_record
        and appointment.client_id is not None
        and appointment.price is not None
    )


def _payment_for(appointment: Appointment) -> Payment:
    due = appointment.start_time.date()
    return Payment(
        user_id=appointment.user_id,
        client_id=appointment.client_id,
        appointment_id=appointment.id,
        amount=appointment.price,
        due_date=due,
        status=PaymentStatus.PENDING.value,
        notes=f"Payment for the appointment on {due.isoformat()}",
    )


class SqlAppointmentStore:
    """AppointmentStore writing appointments and their financial records in one flush."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert_batch(self, appointments: Sequence[Appointment]) -> list[Appointment]:
        try:
            self._session.add_all(appointments)
            await self._session.flush()
            payments = [_payment_for(a) for a in appointments if _is_billable(a)]
            if payments:
                self._session.add_all(payments)
                await self._session.flush()
            for appointment in appointments:
                await self._session.refresh(appointment)
        except SQLAlchemyError as e:
            logger.exception("Appointment batch insert failed (%d row(s))", len(appointments))
            await self._session.rollback()
            raise PersistenceError(f"{type(e).__name__}: {e}") from e
        return list(appointments)


async def create_appointments(
    store: AppointmentStore,
    draft: AppointmentDraft,
    occurrences: Sequence[date],
    *,
    practitioner_id: int,
) -> list[Appointment]:
    """Materialize and submit the whole batch; a rejection leaves nothing booked."""
    appointments = materialize(draft, occurrences, practitioner_id=practitioner_id)
    saved = await store.insert_batch(appointments)
    logger.info(
        "Booked %d appointment(s) for practitioner %s (recurrence group: %s)",
        len(saved),
        practitioner_id,
        appointments[0].recurrence_group_id,
    )
    return saved


def _check_client(draft: AppointmentDraft, clients: ClientDirectory | None) -> None:
    if clients is None or draft.client_id is None:
        return
    if clients.get_client(draft.client_id) is None:
        raise ValidationError("client_id", f"Unknown client {draft.client_id}")


async def preview(
    draft: AppointmentDraft,
    *,
    practitioner_id: int,
    slot_source: BookedSlotSource,
    clients: ClientDirectory | None = None,
) -> RecurrenceResolution:
    """Validate a draft and report what submitting it would book and collide with."""
    draft = validate_draft(draft)
    _check_client(draft, clients)
    booked = await slot_source.list_booked_slots(practitioner_id)
    if draft.is_recurring:
        return resolve(draft, booked)
    candidate = draft.time_range()
    slot = find_conflict(draft.date, candidate, booked)
    conflicts = [RecurrenceConflict(occurrence_date=draft.date, conflicting_slot=slot)] if slot else []
    return RecurrenceResolution(occurrences=[draft.date], conflicts=conflicts)


async def book(
    draft: AppointmentDraft,
    *,
    practitioner_id: int,
    slot_source: BookedSlotSource,
    store: AppointmentStore,
    clients: ClientDirectory | None = None,
    confirmed: bool = False,
) -> list[Appointment]:
    """Submit a draft.

    Single and personal drafts are booked straight away (their conflict warning
    was already shown live). Recurring drafts are resolved against the current
    bookings and raise ``ConfirmationRequired`` until ``confirmed`` is set.
    """
    draft = validate_draft(draft)
    _check_client(draft, clients)
    if draft.is_recurring:
        booked = await slot_source.list_booked_slots(practitioner_id)
        occurrences = confirm_or_raise(resolve(draft, booked), confirmed)
    else:
        occurrences = [draft.date]
    return await create_appointments(store, draft, occurrences, practitioner_id=practitioner_id)


async def list_appointments_for_practitioner(
    session: AsyncSession,
    user_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[Appointment]:
    q = select(Appointment).where(Appointment.user_id == user_id).order_by(Appointment.start_time)
    if from_date:
        q = q.where(Appointment.start_time >= datetime.combine(from_date, time.min))
    if to_date:
        q = q.where(Appointment.start_time < datetime.combine(to_date + timedelta(days=1), time.min))
    result = await session.execute(q)
    return list(result.scalars().all())


async def _delete_with_payments(session: AsyncSession, appointment_ids: list[int]) -> None:
    await session.execute(delete(Payment).where(Payment.appointment_id.in_(appointment_ids)))
    await session.execute(delete(Appointment).where(Appointment.id.in_(appointment_ids)))
    await session.flush()


async def delete_appointment(session: AsyncSession, appointment_id: int, user_id: int) -> bool:
    """Delete only this appointment, even when it belongs to a series."""
    result = await session.execute(
        select(Appointment.id).where(
            Appointment.id == appointment_id,
            Appointment.user_id == user_id,
        )
    )
    if result.scalar_one_or_none() is None:
        return False
    await _delete_with_payments(session, [appointment_id])
    return True


async def delete_recurrence_group(session: AsyncSession, group_id: str, user_id: int) -> int:
    """Delete every appointment of a series. Returns count deleted."""
    result = await session.execute(
        select(Appointment.id).where(
            Appointment.recurrence_group_id == group_id,
            Appointment.user_id == user_id,
        )
    )
    ids = list(result.scalars().all())
    if ids:
        await _delete_with_payments(session, ids)
        logger.info("Deleted recurrence group %s: %d appointment(s)", group_id, len(ids))
    return len(ids)
