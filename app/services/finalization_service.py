"""
Finalize and unlock transactions for attendance periods.

Both run as a single transaction: the period row is locked, its status is
re-read from the store, the status change is applied as a compare-and-set,
every record of the period is flipped, and the audit entry is written before
the commit. Any failure rolls all of it back.

Outcomes are returned as FinalizationResult rather than raised, so the API
layer and batch callers can branch on ErrorCode.
"""
import logging
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.constants import ACTION_FINALIZE_PERIOD, ACTION_UNLOCK_PERIOD, ENTITY_PERIOD
from app.models.attendance_period import AttendancePeriod, PeriodStatus
from app.models.attendance_record import AttendanceRecord, ConflictResolution
from app.schemas.results import ErrorCode, FinalizationResult
from app.services.audit_service import log_audit
from app.services.period_service import get_period_for_update, to_period_out
from app.utils.datetime_utils import now_utc

_log = logging.getLogger(__name__)

MSG_ACTOR_REQUIRED = "Actor id is required"
MSG_PERIOD_NOT_FOUND = "Period not found"
MSG_NOT_PENDING = "Period is already finalized or locked"
MSG_UNRESOLVED = "{count} attendance records have unresolved conflicts"
MSG_NOT_FINALIZED = "Only finalized periods can be unlocked"
MSG_LOCKED = "Locked periods require an administrative procedure and cannot be unlocked here"
MSG_REASON_REQUIRED = "Unlock reason is required"
MSG_FINALIZE_FAILED = "Failed to finalize attendance period"
MSG_UNLOCK_FAILED = "Failed to unlock attendance period"


def _transition_status(
    db: Session,
    period_id: int,
    expected: PeriodStatus,
    values: dict
) -> bool:
    """Compare-and-set on status. False when another writer moved the period first."""
    updated = (
        db.query(AttendancePeriod)
        .filter(AttendancePeriod.id == period_id, AttendancePeriod.status == expected)
        .update(values, synchronize_session=False)
    )
    return updated == 1


def _set_records_finalized(db: Session, period_id: int, finalized: bool) -> int:
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.period_id == period_id)
        .update({AttendanceRecord.is_finalized: finalized}, synchronize_session=False)
    )


def _abort(db: Session, code: ErrorCode, message: str) -> FinalizationResult:
    db.rollback()
    return FinalizationResult.failure(code, message)


def finalize_period(db: Session, period_id: int, actor_id: Optional[str]) -> FinalizationResult:
    """
    Finalize a PENDING period and lock every record in it.

    Args:
        db: Database session; must not be inside another unit of work
        period_id: Period to finalize
        actor_id: Identity of the operator (recorded as finalized_by)

    Returns:
        FinalizationResult with the updated period and the number of records locked,
        or a single error: NOT_FOUND, INVALID_STATE (not PENDING, or lost the race),
        VALIDATION_FAILED (unconfirmed records, missing actor) or SYSTEM_ERROR.
    """
    if not actor_id:
        return FinalizationResult.failure(ErrorCode.VALIDATION_FAILED, MSG_ACTOR_REQUIRED)

    try:
        period = get_period_for_update(db, period_id)
        if period is None:
            return _abort(db, ErrorCode.NOT_FOUND, MSG_PERIOD_NOT_FOUND)
        if period.status != PeriodStatus.PENDING:
            return _abort(db, ErrorCode.INVALID_STATE, MSG_NOT_PENDING)

        # Re-checked under the lock; the validation preview may be stale.
        unresolved = (
            db.query(func.count(AttendanceRecord.id))
            .filter(
                AttendanceRecord.period_id == period_id,
                AttendanceRecord.conflict_resolution != ConflictResolution.CONFIRMED,
            )
            .scalar()
            or 0
        )
        if unresolved > 0:
            return _abort(db, ErrorCode.VALIDATION_FAILED, MSG_UNRESOLVED.format(count=unresolved))

        finalized_at = now_utc()
        if not _transition_status(
            db,
            period_id,
            PeriodStatus.PENDING,
            {
                AttendancePeriod.status: PeriodStatus.FINALIZED,
                AttendancePeriod.finalized_by: actor_id,
                AttendancePeriod.finalized_at: finalized_at,
            },
        ):
            return _abort(db, ErrorCode.INVALID_STATE, MSG_NOT_PENDING)

        affected = _set_records_finalized(db, period_id, True)

        log_audit(
            db=db,
            actor_id=actor_id,
            action=ACTION_FINALIZE_PERIOD,
            entity_type=ENTITY_PERIOD,
            entity_id=period_id,
            before={"status": PeriodStatus.PENDING},
            after={
                "status": PeriodStatus.FINALIZED,
                "finalized_by": actor_id,
                "finalized_at": finalized_at,
            },
            meta={"affected_record_count": affected},
        )

        db.refresh(period)
        period_out = to_period_out(db, period)
        db.commit()
    except Exception:
        db.rollback()
        _log.exception("Finalization of period %s by %s failed", period_id, actor_id)
        return FinalizationResult.failure(ErrorCode.SYSTEM_ERROR, MSG_FINALIZE_FAILED)

    _log.info("Attendance period %s finalized by %s; %s records locked", period_id, actor_id, affected)
    return FinalizationResult(success=True, period=period_out, affected_record_count=affected)


def unlock_period(
    db: Session,
    period_id: int,
    actor_id: Optional[str],
    reason: Optional[str]
) -> FinalizationResult:
    """
    Return a FINALIZED period to PENDING and unlock its records.

    finalized_by / finalized_at are kept as history; the reason is stored on
    the period and in the audit entry. LOCKED periods are refused.
    """
    reason = (reason or "").strip()
    if not reason:
        return FinalizationResult.failure(ErrorCode.VALIDATION_FAILED, MSG_REASON_REQUIRED)
    if not actor_id:
        return FinalizationResult.failure(ErrorCode.VALIDATION_FAILED, MSG_ACTOR_REQUIRED)

    try:
        period = get_period_for_update(db, period_id)
        if period is None:
            return _abort(db, ErrorCode.NOT_FOUND, MSG_PERIOD_NOT_FOUND)
        if period.status == PeriodStatus.LOCKED:
            return _abort(db, ErrorCode.INVALID_STATE, MSG_LOCKED)
        if period.status != PeriodStatus.FINALIZED:
            return _abort(db, ErrorCode.INVALID_STATE, MSG_NOT_FINALIZED)

        if not _transition_status(
            db,
            period_id,
            PeriodStatus.FINALIZED,
            {
                AttendancePeriod.status: PeriodStatus.PENDING,
                AttendancePeriod.unlock_reason: reason,
            },
        ):
            return _abort(db, ErrorCode.INVALID_STATE, MSG_NOT_FINALIZED)

        affected = _set_records_finalized(db, period_id, False)

        log_audit(
            db=db,
            actor_id=actor_id,
            action=ACTION_UNLOCK_PERIOD,
            entity_type=ENTITY_PERIOD,
            entity_id=period_id,
            before={"status": PeriodStatus.FINALIZED},
            after={"status": PeriodStatus.PENDING},
            meta={"reason": reason, "affected_record_count": affected},
        )

        db.refresh(period)
        period_out = to_period_out(db, period)
        db.commit()
    except Exception:
        db.rollback()
        _log.exception("Unlock of period %s by %s failed", period_id, actor_id)
        return FinalizationResult.failure(ErrorCode.SYSTEM_ERROR, MSG_UNLOCK_FAILED)

    _log.warning("Attendance period %s unlocked by %s: %s", period_id, actor_id, reason)
    return FinalizationResult(success=True, period=period_out, affected_record_count=affected)
