import logging
from collections.abc import Sequence
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from app.core.exceptions import ConfirmationRequired
from app.models.scheduling import (
    AppointmentDraft,
    BookedSlot,
    Cadence,
    RecurrenceConflict,
    RecurrenceResolution,
    TimeRange,
)
from app.services.conflict_service import find_conflict

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 52

_STEPS = {
    Cadence.WEEKLY: timedelta(weeks=1),
    Cadence.BIWEEKLY: timedelta(weeks=2),
    # relativedelta clamps to the last day of a shorter month
    Cadence.MONTHLY: relativedelta(months=1),
}


def expand(anchor_date: date, cadence: Cadence, occurrence_count: int) -> list[date]:
    """Occurrence dates of a series, starting with ``anchor_date``.

    Each date is one step after the previous occurrence, so a monthly series
    clamped to February 29th continues on the 29th.
    """
    if not 1 <= occurrence_count <= MAX_OCCURRENCES:
        raise ValueError(f"occurrence_count must be between 1 and {MAX_OCCURRENCES}")
    step = _STEPS[Cadence(cadence)]
    occurrences = [anchor_date]
    while len(occurrences) < occurrence_count:
        occurrences.append(occurrences[-1] + step)
    return occurrences


def resolve(draft: AppointmentDraft, booked_slots: Sequence[BookedSlot]) -> RecurrenceResolution:
    """Expand a validated recurring draft and collect every occurrence that collides.

    Each occurrence reports at most one conflicting slot (the first found).
    """
    if not draft.is_recurring or draft.recurrence is None:
        raise ValueError("resolve() requires a recurring draft")
    candidate = draft.time_range()
    if candidate is None:
        raise ValueError("resolve() requires a draft with a valid date and time range")
    occurrences = expand(draft.date, draft.recurrence.cadence, draft.recurrence.occurrence_count)
    conflicts: list[RecurrenceConflict] = []
    for occurrence in occurrences:
        occurrence_range = TimeRange(date=occurrence, start=candidate.start, end=candidate.end)
        slot = find_conflict(occurrence, occurrence_range, booked_slots)
        if slot is not None:
            conflicts.append(RecurrenceConflict(occurrence_date=occurrence, conflicting_slot=slot))
    if conflicts:
        logger.info(
            "Recurring series from %s: %d of %d occurrence(s) conflict",
            draft.date,
            len(conflicts),
            len(occurrences),
        )
    return RecurrenceResolution(occurrences=occurrences, conflicts=conflicts)


def confirm_or_raise(resolution: RecurrenceResolution, proceed: bool) -> list[date]:
    """Confirmation boundary: returns the dates to book, or raises until the user approves."""
    if not proceed:
        raise ConfirmationRequired(resolution)
    return list(resolution.occurrences)
