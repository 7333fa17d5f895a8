import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_session
from app.api.schemas.appointment import (
    BookAppointmentRequest,
    BookAppointmentResponse,
    FormEventsRequest,
    FormStateResponse,
    SeriesDeletedResponse,
)
from app.core.exceptions import ConfirmationRequired, PersistenceError, ValidationError
from app.models.appointment import AppointmentPublic
from app.models.scheduling import AppointmentDraft, RecurrenceResolution
from app.models.user import User
from app.services.appointment_service import (
    SqlAppointmentStore,
    book,
    delete_appointment,
    delete_recurrence_group,
    list_appointments_for_practitioner,
    preview,
)
from app.services.client_service import load_client_directory
from app.services.form_state import AppointmentFormState
from app.services.slot_service import SqlBookedSlotSource, list_booked_slots

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _validation_failed(exc: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"field": exc.field, "message": exc.message},
    )


@router.post("/form/events", response_model=FormStateResponse)
async def replay_form_events(
    body: FormEventsRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> FormStateResponse:
    """Apply field edits over a fresh draft and return it with the live conflict warning."""
    booked = await list_booked_slots(session, current_user.id)
    clients = await load_client_directory(session, current_user.id)
    try:
        form = AppointmentFormState(
            body.selected_date, booked, clients, selected_time=body.selected_time
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": "selected_time", "message": str(e)},
        ) from e
    for event in body.events:
        try:
            form.dispatch(event)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"field": event.field.value, "message": str(e)},
            ) from e
    return FormStateResponse(draft=form.draft, conflict_warning=form.conflict_warning)


@router.post("/preview", response_model=RecurrenceResolution)
async def preview_appointment(
    draft: AppointmentDraft,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> RecurrenceResolution:
    """Every date the draft would book, plus the ones colliding with existing bookings."""
    clients = await load_client_directory(session, current_user.id)
    try:
        return await preview(
            draft,
            practitioner_id=current_user.id,
            slot_source=SqlBookedSlotSource(session),
            clients=clients,
        )
    except ValidationError as e:
        raise _validation_failed(e) from e


@router.post("", response_model=BookAppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> BookAppointmentResponse:
    clients = await load_client_directory(session, current_user.id)
    try:
        appointments = await book(
            body.draft,
            practitioner_id=current_user.id,
            slot_source=SqlBookedSlotSource(session),
            store=SqlAppointmentStore(session),
            clients=clients,
            confirmed=body.confirmed,
        )
    except ValidationError as e:
        raise _validation_failed(e) from e
    except ConfirmationRequired as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Confirm the recurring series before booking it.",
                "resolution": e.resolution.model_dump(mode="json"),
            },
        ) from e
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.reason,
        ) from e
    return BookAppointmentResponse(
        appointments=[AppointmentPublic.model_validate(a) for a in appointments],
        recurrence_group_id=appointments[0].recurrence_group_id,
    )


@router.get("", response_model=list[AppointmentPublic])
async def list_my_appointments(
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> list[AppointmentPublic]:
    try:
        appointments = await list_appointments_for_practitioner(
            session, current_user.id, from_date=from_date, to_date=to_date
        )
        return [AppointmentPublic.model_validate(a) for a in appointments]
    except Exception as e:
        logger.exception("List appointments failed: %s", e)
        raise HTTPException(status_code=500, detail=f"{type(e).__name__}: {e}") from e


@router.delete("/series/{group_id}", response_model=SeriesDeletedResponse)
async def delete_my_series(
    group_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> SeriesDeletedResponse:
    deleted = await delete_recurrence_group(session, group_id, current_user.id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recurrence group not found or not yours",
        )
    return SeriesDeletedResponse(deleted=deleted)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> None:
    ok = await delete_appointment(session, appointment_id, current_user.id)
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found or not yours",
        )
