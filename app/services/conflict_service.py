from collections.abc import Iterable
from datetime import date

from app.models.scheduling import BookedSlot, TimeRange, format_time_of_day


def find_conflict(
    candidate_date: date, candidate_range: TimeRange, booked_slots: Iterable[BookedSlot]
) -> BookedSlot | None:
    """First booked slot (input order) on the same date that overlaps the candidate."""
    candidate = _on_date(candidate_date, candidate_range)
    for slot in booked_slots:
        if slot.date == candidate_date and slot.overlaps(candidate):
            return slot
    return None


def find_conflicts(
    candidate_date: date, candidate_range: TimeRange, booked_slots: Iterable[BookedSlot]
) -> list[BookedSlot]:
    """Every overlapping booked slot on the candidate's date, in input order."""
    candidate = _on_date(candidate_date, candidate_range)
    return [s for s in booked_slots if s.date == candidate_date and s.overlaps(candidate)]


def describe_conflict(slot: BookedSlot) -> str:
    return (
        f"An appointment is already booked from {format_time_of_day(slot.start_time)} "
        f"to {format_time_of_day(slot.end_time)}: {slot.label}."
    )


def conflict_warning(
    candidate_date: date, candidate_range: TimeRange, booked_slots: Iterable[BookedSlot]
) -> str | None:
    """Advisory message for the live single-booking check, or None when the slot is free."""
    slot = find_conflict(candidate_date, candidate_range, booked_slots)
    return describe_conflict(slot) if slot else None


def _on_date(candidate_date: date, candidate_range: TimeRange) -> TimeRange:
    if candidate_range.date == candidate_date:
        return candidate_range
    return TimeRange(date=candidate_date, start=candidate_range.start, end=candidate_range.end)
