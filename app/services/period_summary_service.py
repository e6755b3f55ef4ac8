"""
Period summary: record, employee and issue counts shown before a finalize decision.
"""
from datetime import date
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.attendance_period import PeriodStatus
from app.models.attendance_record import AttendanceRecord, ConflictResolution
from app.schemas.attendance_period import PeriodOut, PeriodSummary
from app.services.period_service import find_overlapping_period, to_period_out, validate_range


def get_period_summary(db: Session, start_date: date, end_date: date) -> PeriodSummary:
    """
    Summarize records dated in [start_date, end_date].

    When no persisted period overlaps the range, `period` is a transient PENDING
    projection (id None, is_transient True). Nothing is written either way.
    """
    validate_range(start_date, end_date)

    period = find_overlapping_period(db, start_date, end_date)
    if period is not None:
        period_out = to_period_out(db, period)
    else:
        period_out = PeriodOut(
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.PENDING,
            is_transient=True,
        )

    in_range = (
        AttendanceRecord.work_date >= start_date,
        AttendanceRecord.work_date <= end_date,
    )
    total_records = db.query(func.count(AttendanceRecord.id)).filter(*in_range).scalar() or 0
    employee_count = (
        db.query(func.count(func.distinct(AttendanceRecord.employee_code))).filter(*in_range).scalar() or 0
    )
    pending_approvals = (
        db.query(func.count(AttendanceRecord.id))
        .filter(*in_range, AttendanceRecord.conflict_resolution == ConflictResolution.UNRESOLVED)
        .scalar()
        or 0
    )
    conflicts = (
        db.query(func.count(AttendanceRecord.id))
        .filter(*in_range, AttendanceRecord.conflict_resolution == ConflictResolution.REJECTED)
        .scalar()
        or 0
    )

    return PeriodSummary(
        total_records=total_records,
        employee_count=employee_count,
        pending_approvals=pending_approvals,
        conflicts=conflicts,
        period=period_out,
    )
