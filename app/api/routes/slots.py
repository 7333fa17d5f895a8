from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_session
from app.api.schemas.appointment import AvailableSlotsResponse, SlotInfo
from app.models.scheduling import BookedSlot
from app.models.user import User
from app.services.slot_service import get_available_slots_for_date, list_booked_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    date_param: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> AvailableSlotsResponse:
    """Agenda grid for the given day; a slot is unavailable when any booking overlaps it."""
    grid = await get_available_slots_for_date(session, current_user.id, date_param)
    slot_infos = [
        SlotInfo(
            start=r.start_at,
            end=r.end_at,
            available=booked is None,
            booked_label=booked.label if booked else None,
        )
        for r, booked in grid
    ]
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        slots=slot_infos,
    )


@router.get("/booked", response_model=list[BookedSlot])
async def booked_slots(
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> list[BookedSlot]:
    """Snapshot a client UI can run the conflict checks against."""
    return await list_booked_slots(session, current_user.id, from_date=from_date, to_date=to_date)
