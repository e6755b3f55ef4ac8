"""
Period validator: can the records of a date range be finalized?

Read-only and repeatable. Backs the "can I finalize?" preview; the
finalization transaction repeats the conflict check on its own.
"""
from datetime import date
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.attendance_record import AttendanceRecord, ConflictResolution
from app.schemas.attendance_period import PeriodIssue, PeriodIssueType, PeriodValidationResult
from app.services.period_service import validate_range

ISSUE_MESSAGES = {
    PeriodIssueType.UNRESOLVED_CONFLICTS: "Attendance records have unresolved conflicts that must be addressed",
    PeriodIssueType.PENDING_APPROVALS: "Attendance records are pending approval",
    PeriodIssueType.MISSING_DATA: "Attendance records are missing clock in/out times",
}


def _count_in_range(db: Session, start_date: date, end_date: date, *criteria) -> int:
    return (
        db.query(func.count(AttendanceRecord.id))
        .filter(
            AttendanceRecord.work_date >= start_date,
            AttendanceRecord.work_date <= end_date,
            *criteria,
        )
        .scalar()
        or 0
    )


def validate_period(db: Session, start_date: date, end_date: date) -> PeriodValidationResult:
    """
    Count the three blocking issue kinds over records dated in [start_date, end_date].

    UNRESOLVED_CONFLICTS counts everything not CONFIRMED (UNRESOLVED and REJECTED);
    PENDING_APPROVALS counts only UNRESOLVED, so an unreviewed record shows up in both.
    """
    validate_range(start_date, end_date)

    counts = {
        PeriodIssueType.UNRESOLVED_CONFLICTS: _count_in_range(
            db, start_date, end_date,
            AttendanceRecord.conflict_resolution != ConflictResolution.CONFIRMED,
        ),
        PeriodIssueType.PENDING_APPROVALS: _count_in_range(
            db, start_date, end_date,
            AttendanceRecord.conflict_resolution == ConflictResolution.UNRESOLVED,
        ),
        PeriodIssueType.MISSING_DATA: _count_in_range(
            db, start_date, end_date,
            AttendanceRecord.clock_in_at.is_(None),
            AttendanceRecord.clock_out_at.is_(None),
        ),
    }

    issues = [
        PeriodIssue(type=issue_type, message=ISSUE_MESSAGES[issue_type], count=count)
        for issue_type, count in counts.items()
        if count > 0
    ]
    return PeriodValidationResult(can_finalize=not issues, issues=issues)
