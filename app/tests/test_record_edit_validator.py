"""
Tests for field-level validation of attendance record edits
"""
from datetime import date, datetime, time, timedelta

import pytest

from app.schemas.attendance_record import AttendanceRecordOut, RecordEditRequest
from app.services.record_edit_validator import (
    MSG_BAD_TIME,
    MSG_DATE_REQUIRED,
    MSG_FUTURE_DATE,
    MSG_NO_TIMES,
    MSG_OUT_BEFORE_IN,
    MSG_REASON_REQUIRED,
    has_changes,
    parse_wall_clock,
    validate_record_edit,
    validate_work_duration,
)
from app.utils.datetime_utils import combine_local

WORK_DATE = date(2024, 1, 15)
TODAY = date(2024, 2, 1)


@pytest.fixture
def original():
    return AttendanceRecordOut(
        id=1,
        employee_code="EMP001",
        work_date=WORK_DATE,
        clock_in_at=combine_local(WORK_DATE, time(9, 0)),
        clock_out_at=combine_local(WORK_DATE, time(17, 0)),
        total_hours=8.0,
    )


def _messages(violations):
    return [(v.field, v.message) for v in violations]


def test_unchanged_edit_is_valid_without_reason(original):
    """Re-submitting the stored values needs no reason"""
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="09:00", clock_out="17:00")

    assert validate_record_edit(request, original, today=TODAY) == []
    assert has_changes(request, original) is False


def test_changed_time_requires_reason(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="10:00", clock_out="17:00", reason="   ")

    violations = validate_record_edit(request, original, today=TODAY)

    assert _messages(violations) == [("reason", MSG_REASON_REQUIRED)]


def test_changed_time_with_reason_is_valid(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="10:00", clock_out="18:30", reason="Badge reader fault")

    assert validate_record_edit(request, original, today=TODAY) == []


def test_single_digit_hour_is_accepted(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="9:00", clock_out="17:00")

    assert validate_record_edit(request, original, today=TODAY) == []
    assert has_changes(request, original) is False


def test_missing_date(original):
    request = RecordEditRequest(work_date=None, clock_in="09:00", clock_out="17:00", reason="fix")

    violations = validate_record_edit(request, original, today=TODAY)

    assert ("work_date", MSG_DATE_REQUIRED) in _messages(violations)


def test_future_date_rejected(original):
    request = RecordEditRequest(
        work_date=TODAY + timedelta(days=1), clock_in="09:00", clock_out="17:00", reason="fix"
    )

    violations = validate_record_edit(request, original, today=TODAY)

    assert _messages(violations) == [("work_date", MSG_FUTURE_DATE)]


def test_today_is_not_future(original):
    request = RecordEditRequest(work_date=TODAY, clock_in="09:00", clock_out="17:00", reason="moved")

    assert validate_record_edit(request, original, today=TODAY) == []


@pytest.mark.parametrize("value", ["24:00", "9:60", "0900", "ab:cd", "12:5"])
def test_malformed_times_rejected(original, value):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in=value, clock_out="17:00", reason="fix")

    violations = validate_record_edit(request, original, today=TODAY)

    assert ("clock_in", MSG_BAD_TIME) in _messages(violations)


def test_clock_out_before_clock_in(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="17:00", clock_out="09:00", reason="fix")

    violations = validate_record_edit(request, original, today=TODAY)

    assert _messages(violations) == [("clock_out", MSG_OUT_BEFORE_IN)]


@pytest.mark.parametrize("reason", ["", "Shift swap approved by supervisor"])
def test_clock_out_before_clock_in_rejected_regardless_of_reason(original, reason):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="18:00", clock_out="17:00", reason=reason)

    violations = validate_record_edit(request, original, today=TODAY)

    assert ("clock_out", MSG_OUT_BEFORE_IN) in _messages(violations)


def test_full_day_span_is_valid(original):
    """00:00 to 23:59 stays inside the 24 hour limit"""
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="00:00", clock_out="23:59", reason="Inventory count")

    assert validate_record_edit(request, original, today=TODAY) == []


def test_equal_times_rejected(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="09:00", clock_out="09:00", reason="fix")

    violations = validate_record_edit(request, original, today=TODAY)

    assert _messages(violations) == [("clock_out", MSG_OUT_BEFORE_IN)]


def test_duration_below_minimum(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="09:00", clock_out="09:10", reason="fix")

    violations = validate_record_edit(request, original, today=TODAY)

    assert _messages(violations) == [("clock_out", "Work duration must be at least 15 minutes")]


def test_duration_exactly_minimum_is_valid(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="09:00", clock_out="09:15", reason="fix")

    assert validate_record_edit(request, original, today=TODAY) == []


def test_no_times_supplied(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="", clock_out=None, reason="cleared")

    violations = validate_record_edit(request, original, today=TODAY)

    assert ("general", MSG_NO_TIMES) in _messages(violations)


def test_only_clock_in_is_enough(original):
    request = RecordEditRequest(work_date=WORK_DATE, clock_in="09:00", clock_out="", reason="missed punch out")

    assert validate_record_edit(request, original, today=TODAY) == []


def test_violations_are_accumulated(original):
    """Every rule is evaluated; nothing short-circuits"""
    request = RecordEditRequest(work_date=None, clock_in="25:00", clock_out="", reason="")

    fields = [v.field for v in validate_record_edit(request, original, today=TODAY)]

    assert fields == ["work_date", "clock_in", "reason"]


def test_validate_work_duration_over_maximum_across_midnight():
    start = datetime(2024, 1, 15, 8, 0)
    end = datetime(2024, 1, 16, 8, 30)

    violations = validate_work_duration(start, end)

    assert _messages(violations) == [("clock_out", "Work duration cannot exceed 24 hours")]


def test_validate_work_duration_night_shift_is_valid():
    start = datetime(2024, 1, 15, 22, 0)
    end = datetime(2024, 1, 16, 6, 0)

    assert validate_work_duration(start, end) == []


def test_validate_work_duration_custom_bounds():
    start = datetime(2024, 1, 15, 9, 0)
    end = datetime(2024, 1, 15, 9, 20)

    violations = validate_work_duration(start, end, min_minutes=30, max_hours=12)

    assert _messages(violations) == [("clock_out", "Work duration must be at least 30 minutes")]


def test_parse_wall_clock():
    assert parse_wall_clock("7:05") == time(7, 5)
    assert parse_wall_clock(" 23:59 ") == time(23, 59)
    assert parse_wall_clock("") is None
    assert parse_wall_clock(None) is None
    assert parse_wall_clock("24:00") is None
