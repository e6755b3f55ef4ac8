"""
Record editability guard: a record may only be mutated while neither it nor its period is locked.
"""
from typing import Any

from app.models.attendance_period import LOCKED_STATUSES, PeriodStatus
from app.schemas.attendance_record import EditabilityDecision


def can_edit(record: Any) -> EditabilityDecision:
    """
    Decide whether `record` may be edited.

    Accepts the ORM AttendanceRecord or the client-side AttendanceRecordOut;
    both expose is_finalized and period_status. A client-side answer is only a
    hint: the edit transaction calls this again on freshly locked rows.
    """
    status = record.period_status
    if status is not None:
        status = PeriodStatus(status)

    if status in LOCKED_STATUSES:
        return EditabilityDecision(
            allowed=False,
            reason=f"Record is part of a {status.value.lower()} period and cannot be edited",
        )
    if record.is_finalized:
        return EditabilityDecision(
            allowed=False,
            reason="Record is part of a finalized period and cannot be edited",
        )
    return EditabilityDecision(allowed=True)
