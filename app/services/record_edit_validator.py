"""
Field-level validation of a proposed attendance record edit.

Pure functions: no database access, no clock access beyond the optional
`today` default, so the edit form can call validate_record_edit on every
change and the server can run the very same rules before persisting.
Every rule is evaluated; violations are accumulated, never short-circuited.
"""
import re
from datetime import date, datetime, time
from typing import Any, List, Optional

from app.core.config import settings
from app.schemas.attendance_record import EditViolation, RecordEditRequest
from app.utils.datetime_utils import format_hhmm, local_today

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

MSG_DATE_REQUIRED = "Date is required"
MSG_FUTURE_DATE = "Cannot set attendance for future dates"
MSG_BAD_TIME = "Invalid time format. Use HH:MM (24-hour format)"
MSG_OUT_BEFORE_IN = "Clock-out time must be after clock-in time"
MSG_TOO_LONG = "Work duration cannot exceed {hours} hours"
MSG_TOO_SHORT = "Work duration must be at least {minutes} minutes"
MSG_NO_TIMES = "At least one time (clock-in or clock-out) must be provided"
MSG_REASON_REQUIRED = "Reason is required for manual edits"


def _supplied(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def parse_wall_clock(value: Optional[str]) -> Optional[time]:
    """Parse a 24-hour H:MM / HH:MM string; None when absent or malformed."""
    if not _supplied(value):
        return None
    value = value.strip()
    if not TIME_PATTERN.match(value):
        return None
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _normalized_hhmm(value: Optional[str]) -> str:
    """Canonical HH:MM for comparison with the stored record; raw text if it does not parse."""
    parsed = parse_wall_clock(value)
    if parsed is not None:
        return parsed.strftime("%H:%M")
    return value.strip() if value else ""


def validate_work_duration(
    start: datetime,
    end: datetime,
    min_minutes: Optional[int] = None,
    max_hours: Optional[int] = None,
) -> List[EditViolation]:
    """
    Sequencing and duration bounds for a clock-in/clock-out pair.

    Works on full datetimes so spans that cross midnight (or synthetic spans
    longer than a day) are checked the same way as same-day form input.
    """
    min_minutes = settings.MIN_WORK_MINUTES if min_minutes is None else min_minutes
    max_hours = settings.MAX_WORK_HOURS if max_hours is None else max_hours

    if start >= end:
        return [EditViolation(field="clock_out", message=MSG_OUT_BEFORE_IN)]

    violations: List[EditViolation] = []
    minutes = (end - start).total_seconds() / 60
    if minutes > max_hours * 60:
        violations.append(EditViolation(field="clock_out", message=MSG_TOO_LONG.format(hours=max_hours)))
    if minutes < min_minutes:
        violations.append(EditViolation(field="clock_out", message=MSG_TOO_SHORT.format(minutes=min_minutes)))
    return violations


def has_changes(proposal: RecordEditRequest, original: Any) -> bool:
    """True when date, clock-in or clock-out differ from the original record (local HH:MM)."""
    if original is None:
        return True
    return (
        proposal.work_date != original.work_date
        or _normalized_hhmm(proposal.clock_in) != format_hhmm(original.clock_in_at)
        or _normalized_hhmm(proposal.clock_out) != format_hhmm(original.clock_out_at)
    )


def validate_record_edit(
    proposal: RecordEditRequest,
    original: Any,
    today: Optional[date] = None,
) -> List[EditViolation]:
    """
    Validate a proposed edit against the original record.

    Args:
        proposal: Date, clock-in/out wall-clock strings and reason from the form
        original: The record being edited (ORM model or AttendanceRecordOut)
        today: Operator-local "today"; defaults to the current date in settings.OPERATOR_TZ

    Returns:
        List of field-tagged violations; empty means the edit is acceptable
    """
    today = today or local_today()
    violations: List[EditViolation] = []

    if proposal.work_date is None:
        violations.append(EditViolation(field="work_date", message=MSG_DATE_REQUIRED))
    elif proposal.work_date > today:
        violations.append(EditViolation(field="work_date", message=MSG_FUTURE_DATE))

    clock_in = parse_wall_clock(proposal.clock_in)
    clock_out = parse_wall_clock(proposal.clock_out)
    if _supplied(proposal.clock_in) and clock_in is None:
        violations.append(EditViolation(field="clock_in", message=MSG_BAD_TIME))
    if _supplied(proposal.clock_out) and clock_out is None:
        violations.append(EditViolation(field="clock_out", message=MSG_BAD_TIME))

    if clock_in is not None and clock_out is not None:
        day = proposal.work_date or today
        violations.extend(
            validate_work_duration(datetime.combine(day, clock_in), datetime.combine(day, clock_out))
        )

    if not _supplied(proposal.clock_in) and not _supplied(proposal.clock_out):
        violations.append(EditViolation(field="general", message=MSG_NO_TIMES))

    if has_changes(proposal, original) and not proposal.reason.strip():
        violations.append(EditViolation(field="reason", message=MSG_REASON_REQUIRED))

    return violations
