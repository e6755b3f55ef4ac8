"""
Attendance period store: creation, lookup and listing of periods.

Status transitions live in finalization_service; this module owns creation
(with overlap rejection and record association) and the read side.
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.constants import ACTION_CREATE_PERIOD, ENTITY_PERIOD
from app.models.attendance_period import AttendancePeriod, PeriodStatus, LOCKED_STATUSES
from app.models.attendance_record import AttendanceRecord
from app.schemas.attendance_period import PeriodOut
from app.services.audit_service import log_audit

_log = logging.getLogger(__name__)

# Key of the transaction-scoped advisory lock that serializes period creation
PERIOD_CREATE_LOCK_KEY = 7301


def validate_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must be less than or equal to end_date",
        )


def lock_period_creation(db: Session) -> None:
    """
    Serialize period creation for the rest of the current transaction.

    The overlap query cannot see another session's uncommitted insert, so two
    creates with partially overlapping ranges would both pass it. PostgreSQL
    takes an advisory lock released at commit or rollback; SQLite already holds
    the write lock from BEGIN IMMEDIATE.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": PERIOD_CREATE_LOCK_KEY})


def find_overlapping_period(db: Session, start_date: date, end_date: date) -> Optional[AttendancePeriod]:
    """First period whose inclusive range intersects [start_date, end_date]."""
    return (
        db.query(AttendancePeriod)
        .filter(
            AttendancePeriod.start_date <= end_date,
            AttendancePeriod.end_date >= start_date,
        )
        .order_by(AttendancePeriod.start_date)
        .first()
    )


def count_period_records(db: Session, period_id: int) -> int:
    return db.query(func.count(AttendanceRecord.id)).filter(AttendanceRecord.period_id == period_id).scalar() or 0


def to_period_out(db: Session, period: AttendancePeriod) -> PeriodOut:
    out = PeriodOut.model_validate(period)
    out.record_count = count_period_records(db, period.id)
    return out


def create_period(
    db: Session,
    start_date: date,
    end_date: date,
    actor_id: str
) -> AttendancePeriod:
    """
    Create a PENDING period and attach every unassigned record in its range.

    Args:
        db: Database session
        start_date: First day (inclusive)
        end_date: Last day (inclusive)
        actor_id: Identity of the operator creating the period

    Returns:
        Created AttendancePeriod

    Raises:
        HTTPException: 400 for an inverted range or missing actor, 409 on overlap
    """
    validate_range(start_date, end_date)
    if not actor_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Actor id is required")

    try:
        lock_period_creation(db)
        overlapping = find_overlapping_period(db, start_date, end_date)
        if overlapping:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=(
                    f"Period overlaps with existing period {overlapping.id} "
                    f"({overlapping.start_date} to {overlapping.end_date})"
                ),
            )

        period = AttendancePeriod(
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.PENDING,
            created_by=actor_id,
        )
        db.add(period)
        db.flush()

        associated = (
            db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.work_date >= start_date,
                AttendanceRecord.work_date <= end_date,
                AttendanceRecord.period_id.is_(None),
            )
            .update({AttendanceRecord.period_id: period.id}, synchronize_session=False)
        )

        log_audit(
            db=db,
            actor_id=actor_id,
            action=ACTION_CREATE_PERIOD,
            entity_type=ENTITY_PERIOD,
            entity_id=period.id,
            after={
                "start_date": start_date,
                "end_date": end_date,
                "status": PeriodStatus.PENDING,
            },
            meta={"records_associated": associated},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A period for {start_date} to {end_date} already exists",
        )
    except Exception:
        db.rollback()
        raise

    db.refresh(period)
    _log.info(
        "Attendance period %s created (%s to %s) by %s; %s records associated",
        period.id, start_date, end_date, actor_id, associated,
    )
    return period


def get_period(db: Session, period_id: int) -> AttendancePeriod:
    period = db.query(AttendancePeriod).filter(AttendancePeriod.id == period_id).first()
    if not period:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Period not found")
    return period


def get_period_for_update(db: Session, period_id: int) -> Optional[AttendancePeriod]:
    """
    Load a period with a row lock held until the caller's transaction ends.

    populate_existing() discards any copy already in the identity map so the
    status check reads what the store holds now.
    """
    return (
        db.query(AttendancePeriod)
        .filter(AttendancePeriod.id == period_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def list_periods(db: Session) -> List[AttendancePeriod]:
    """All periods, newest first."""
    return db.query(AttendancePeriod).order_by(AttendancePeriod.start_date.desc()).all()


def list_payroll_eligible_records(db: Session, period_id: int) -> List[AttendanceRecord]:
    """
    Records payroll may consume: finalized records of a FINALIZED or LOCKED period.
    Returns an empty list while the period is PENDING.
    """
    period = get_period(db, period_id)
    if period.status not in LOCKED_STATUSES:
        return []
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.period_id == period_id,
            AttendanceRecord.is_finalized.is_(True),
        )
        .order_by(AttendanceRecord.employee_code, AttendanceRecord.work_date)
        .all()
    )
