from datetime import date, time
from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.models.scheduling import (
    AppointmentDraft,
    AppointmentKind,
    Cadence,
    ClientInfo,
    RecurrenceSpec,
    SessionKind,
)
from app.services.client_service import ClientSnapshot
from app.services.form_state import (
    DEFAULT_OCCURRENCE_COUNT,
    AppointmentFormState,
    DraftEvent,
    DraftField,
    normalize,
    reduce,
    validate_draft,
)
from tests.conftest import make_slot

DAY = date(2024, 3, 1)
ANA = ClientInfo(id=1, name="Ana Souza", default_session_price=Decimal("150.00"))
BRUNO = ClientInfo(id=2, name="Bruno Lima")


def _event(field: DraftField, value, client: ClientInfo | None = None) -> DraftEvent:
    return DraftEvent(field=field, value=value, client=client)


def _valid_single(**overrides) -> AppointmentDraft:
    values = dict(
        client_id=1,
        date=DAY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        price="150.00",
    )
    values.update(overrides)
    return AppointmentDraft(**values)


# reducer


def test_start_time_sets_default_end_time():
    draft = reduce(AppointmentDraft(), _event(DraftField.START_TIME, "14:15"))
    assert draft.start_time == time(14, 15)
    assert draft.end_time == time(15, 15)


def test_explicit_end_time_is_kept_when_start_changes():
    draft = reduce(AppointmentDraft(), _event(DraftField.END_TIME, "16:00"))
    draft = reduce(draft, _event(DraftField.START_TIME, "14:00"))
    assert draft.end_time == time(16, 0)
    assert draft.end_time_touched


def test_default_end_time_wraps_within_day():
    draft = reduce(AppointmentDraft(), _event(DraftField.START_TIME, "23:30"))
    assert draft.end_time == time(0, 30)


def test_session_length_is_configurable():
    draft = reduce(AppointmentDraft(), _event(DraftField.START_TIME, "09:00"), session_minutes=50)
    assert draft.end_time == time(9, 50)


def test_becoming_personal_clears_client_and_billing():
    draft = _valid_single()

    draft = reduce(draft, _event(DraftField.SESSION_KIND, "personal"))

    assert draft.client_id is None
    assert draft.price is None
    assert draft.creates_financial_record is False


def test_leaving_personal_restores_financial_record():
    draft = reduce(AppointmentDraft(), _event(DraftField.SESSION_KIND, "personal"))
    draft = reduce(draft, _event(DraftField.SESSION_KIND, "single"))
    assert draft.creates_financial_record is True


def test_personal_draft_ignores_client_and_price_edits():
    draft = reduce(AppointmentDraft(), _event(DraftField.SESSION_KIND, "personal"))
    draft = reduce(draft, _event(DraftField.CLIENT_ID, 1, ANA))
    draft = reduce(draft, _event(DraftField.PRICE, "90"))
    draft = reduce(draft, _event(DraftField.CREATES_FINANCIAL_RECORD, True))
    assert draft.client_id is None
    assert draft.price is None
    assert draft.creates_financial_record is False


@pytest.mark.parametrize(
    "value,expected",
    [("false", False), ("0", False), ("off", False), (False, False), ("true", True), (1, True)],
)
def test_financial_record_toggle_parses_form_values(value, expected):
    draft = reduce(AppointmentDraft(), _event(DraftField.CREATES_FINANCIAL_RECORD, value))
    assert draft.creates_financial_record is expected


def test_unreadable_financial_record_toggle_keeps_current_value():
    draft = reduce(AppointmentDraft(), _event(DraftField.CREATES_FINANCIAL_RECORD, "false"))
    draft = reduce(draft, _event(DraftField.CREATES_FINANCIAL_RECORD, "maybe"))
    assert draft.creates_financial_record is False


def test_client_selection_fills_default_price():
    draft = reduce(AppointmentDraft(), _event(DraftField.CLIENT_ID, 1, ANA))
    assert draft.client_id == 1
    assert draft.price == "150.00"


def test_client_selection_keeps_typed_price():
    draft = reduce(AppointmentDraft(), _event(DraftField.PRICE, "120"))
    draft = reduce(draft, _event(DraftField.CLIENT_ID, 1, ANA))
    assert draft.price == "120"


def test_client_without_default_price_leaves_price_alone():
    draft = reduce(AppointmentDraft(), _event(DraftField.CLIENT_ID, 1, ANA))
    draft = reduce(draft, _event(DraftField.CLIENT_ID, 2, BRUNO))
    assert draft.client_id == 2
    assert draft.price == "150.00"


def test_becoming_recurring_initialises_recurrence():
    draft = reduce(AppointmentDraft(), _event(DraftField.SESSION_KIND, "recurring"))
    assert draft.recurrence == RecurrenceSpec(occurrence_count=DEFAULT_OCCURRENCE_COUNT)

    draft = reduce(draft, _event(DraftField.CADENCE, "biweekly"))
    draft = reduce(draft, _event(DraftField.OCCURRENCE_COUNT, "8"))
    assert draft.recurrence == RecurrenceSpec(cadence=Cadence.BIWEEKLY, occurrence_count=8)

    draft = reduce(draft, _event(DraftField.SESSION_KIND, "single"))
    assert draft.recurrence is None


def test_recurrence_edits_ignored_unless_recurring():
    draft = reduce(AppointmentDraft(), _event(DraftField.CADENCE, "weekly"))
    assert draft.recurrence is None


def test_unparsable_text_clears_field_without_raising():
    draft = reduce(_valid_single(), _event(DraftField.START_TIME, "25:99"))
    assert draft.start_time is None
    draft = reduce(draft, _event(DraftField.DATE, "not-a-date"))
    assert draft.date is None


def test_reduce_does_not_mutate_input():
    draft = _valid_single()
    reduce(draft, _event(DraftField.SESSION_KIND, "personal"))
    assert draft.client_id == 1
    assert draft.session_kind == SessionKind.SINGLE


@pytest.mark.parametrize("kind", list(SessionKind))
def test_personal_invariant_after_normalization(kind):
    draft = AppointmentDraft(session_kind=kind, client_id=3, price="10", creates_financial_record=True)
    draft = normalize(reduce(draft, _event(DraftField.SESSION_KIND, "personal")))
    assert draft.client_id is None
    assert draft.price is None
    assert draft.creates_financial_record is False


# validation


def test_valid_single_draft_passes():
    assert validate_draft(_valid_single()) == _valid_single()


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"client_id": None}, "client_id"),
        ({"end_time": time(9, 0)}, "end_time"),
        ({"end_time": time(8, 0)}, "end_time"),
        ({"start_time": None}, "start_time"),
        ({"date": None}, "date"),
        ({"appointment_kind": AppointmentKind.REMOTE}, "video_link"),
        ({"price": None}, "price"),
        ({"price": "abc"}, "price"),
        ({"price": "-5"}, "price"),
        ({"session_kind": SessionKind.RECURRING}, "recurrence.cadence"),
        (
            {"session_kind": SessionKind.RECURRING, "recurrence": RecurrenceSpec(cadence=Cadence.WEEKLY)},
            "recurrence.occurrence_count",
        ),
    ],
)
def test_validation_names_offending_field(overrides, field):
    with pytest.raises(ValidationError) as excinfo:
        validate_draft(_valid_single(**overrides))
    assert excinfo.value.field == field


def test_price_not_required_without_financial_record():
    validate_draft(_valid_single(price=None, creates_financial_record=False))


def test_remote_with_link_passes():
    validate_draft(_valid_single(appointment_kind=AppointmentKind.REMOTE, video_link="https://meet.example/abc"))


def test_personal_needs_no_client_price_or_link():
    draft = AppointmentDraft(
        session_kind=SessionKind.PERSONAL,
        date=DAY,
        start_time=time(12, 0),
        end_time=time(13, 0),
        appointment_kind=AppointmentKind.REMOTE,
    )
    assert validate_draft(draft).creates_financial_record is False


def test_occurrence_count_above_limit_fails_on_submit():
    draft = reduce(_valid_single(), _event(DraftField.SESSION_KIND, "recurring"))
    draft = reduce(draft, _event(DraftField.CADENCE, "weekly"))
    draft = reduce(draft, _event(DraftField.OCCURRENCE_COUNT, 60))
    with pytest.raises(ValidationError) as excinfo:
        validate_draft(draft)
    assert excinfo.value.field == "recurrence.occurrence_count"


# form state


def test_form_state_defaults_to_one_hour_session():
    form = AppointmentFormState(DAY)
    assert form.draft.start_time == time(9, 0)
    assert form.draft.end_time == time(10, 0)
    assert form.conflict_warning is None


def test_form_state_uses_selected_time():
    form = AppointmentFormState(DAY, selected_time="14:30")
    assert form.draft.start_time == time(14, 30)
    assert form.draft.end_time == time(15, 30)


def test_form_state_warns_about_single_conflict():
    booked = [make_slot(DAY, "09:00", "10:00", "Session A")]
    form = AppointmentFormState(DAY, booked, selected_time="10:00")
    assert form.conflict_warning is None

    form.set("start_time", "09:30")

    assert "Session A" in form.conflict_warning

    form.set(DraftField.START_TIME, "10:00")
    assert form.conflict_warning is None


def test_form_state_suppresses_live_check_for_recurring():
    booked = [make_slot(DAY, "09:00", "10:00", "Session A")]
    form = AppointmentFormState(DAY, booked)
    assert form.conflict_warning is not None

    form.set("session_kind", "recurring")

    assert form.conflict_warning is None


def test_form_state_rechecks_when_date_changes():
    other_day = date(2024, 3, 8)
    form = AppointmentFormState(DAY, [make_slot(other_day, "09:00", "10:00", "Next week")])
    assert form.conflict_warning is None

    form.set("date", other_day.isoformat())

    assert "Next week" in form.conflict_warning


def test_form_state_refreshes_snapshot():
    form = AppointmentFormState(DAY)
    form.refresh_booked_slots([make_slot(DAY, "09:30", "11:00", "Walk-in")])
    assert "Walk-in" in form.conflict_warning


def test_form_state_looks_up_client_price():
    form = AppointmentFormState(DAY, client_directory=ClientSnapshot([ANA, BRUNO]))
    form.set("client_id", "1")
    assert form.draft.price == "150.00"


def test_form_state_submit_validates():
    form = AppointmentFormState(DAY)
    with pytest.raises(ValidationError) as excinfo:
        form.submit()
    assert excinfo.value.field == "client_id"

    form.set("session_kind", "personal")
    assert form.submit().session_kind == SessionKind.PERSONAL
