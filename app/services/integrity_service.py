"""
Consistency checks between periods and their records.

Finalize and unlock keep these invariants inside one transaction; the checks
exist to catch rows changed outside the service (manual SQL, restores).
"""
from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session, aliased

from app.models.attendance_period import AttendancePeriod, LOCKED_STATUSES
from app.models.attendance_record import AttendanceRecord


class IntegrityIssue(BaseModel):
    kind: str
    period_id: int
    record_id: Optional[int] = None
    detail: str


def find_integrity_issues(db: Session) -> List[IntegrityIssue]:
    """
    Report:
    - records whose is_finalized disagrees with their period's status
    - records attached to a period whose range does not contain work_date
    - pairs of periods with overlapping ranges
    """
    issues: List[IntegrityIssue] = []

    rows = (
        db.query(AttendanceRecord, AttendancePeriod)
        .join(AttendancePeriod, AttendanceRecord.period_id == AttendancePeriod.id)
        .order_by(AttendancePeriod.id, AttendanceRecord.id)
        .all()
    )
    for record, period in rows:
        expected = period.status in LOCKED_STATUSES
        if record.is_finalized != expected:
            issues.append(IntegrityIssue(
                kind="FINALIZED_FLAG_MISMATCH",
                period_id=period.id,
                record_id=record.id,
                detail=f"is_finalized={record.is_finalized} but period is {period.status.value}",
            ))
        if not (period.start_date <= record.work_date <= period.end_date):
            issues.append(IntegrityIssue(
                kind="RECORD_OUTSIDE_PERIOD",
                period_id=period.id,
                record_id=record.id,
                detail=f"work_date {record.work_date} outside {period.start_date} to {period.end_date}",
            ))

    other = aliased(AttendancePeriod)
    overlaps = (
        db.query(AttendancePeriod, other)
        .join(other, AttendancePeriod.id < other.id)
        .filter(AttendancePeriod.start_date <= other.end_date, AttendancePeriod.end_date >= other.start_date)
        .order_by(AttendancePeriod.id, other.id)
        .all()
    )
    for first, second in overlaps:
        issues.append(IntegrityIssue(
            kind="OVERLAPPING_PERIODS",
            period_id=first.id,
            detail=f"overlaps period {second.id}",
        ))

    return issues
