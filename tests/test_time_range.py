from datetime import date, time

import pytest

from app.models.scheduling import (
    TimeRange,
    add_minutes,
    format_time_of_day,
    parse_time_of_day,
)

DAY = date(2024, 3, 1)


def _range(start: str, end: str, day: date = DAY) -> TimeRange:
    return TimeRange(date=day, start=parse_time_of_day(start), end=parse_time_of_day(end))


@pytest.mark.parametrize(
    "a,b,expected",
    [
        (("09:00", "10:00"), ("09:30", "10:30"), True),
        (("09:00", "10:00"), ("10:00", "11:00"), False),
        (("09:00", "12:00"), ("10:00", "11:00"), True),
        (("09:00", "09:30"), ("11:00", "12:00"), False),
        (("09:00", "10:00"), ("09:00", "10:00"), True),
        (("08:00", "09:01"), ("09:00", "09:30"), True),
    ],
)
def test_overlap_is_symmetric(a, b, expected):
    ra, rb = _range(*a), _range(*b)
    assert ra.overlaps(rb) is expected
    assert rb.overlaps(ra) is expected


def test_touching_endpoints_do_not_overlap():
    assert not _range("09:00", "10:00").overlaps(_range("10:00", "11:00"))
    assert not _range("10:00", "11:00").overlaps(_range("09:00", "10:00"))


def test_different_dates_never_overlap():
    assert not _range("09:00", "10:00").overlaps(_range("09:00", "10:00", date(2024, 3, 2)))


def test_range_requires_end_after_start():
    with pytest.raises(ValueError):
        _range("10:00", "10:00")
    with pytest.raises(ValueError):
        _range("11:00", "10:00")


def test_range_absolute_instants():
    r = _range("14:00", "15:30")
    assert r.start_at.isoformat() == "2024-03-01T14:00:00"
    assert r.end_at.isoformat() == "2024-03-01T15:30:00"


def test_parse_and_format_time_of_day():
    assert parse_time_of_day("09:05") == time(9, 5)
    assert parse_time_of_day("7:30") == time(7, 30)
    assert parse_time_of_day(time(23, 59)) == time(23, 59)
    assert format_time_of_day(time(9, 5)) == "09:05"


@pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", "12:00:00", ""])
def test_parse_time_of_day_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        parse_time_of_day(raw)


def test_parse_time_of_day_rejects_seconds():
    with pytest.raises(ValueError):
        parse_time_of_day(time(9, 0, 30))


def test_add_minutes_wraps_within_day():
    assert add_minutes(time(9, 0), 60) == time(10, 0)
    assert add_minutes(time(23, 30), 60) == time(0, 30)
