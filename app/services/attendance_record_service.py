"""
Attendance record service: reads and the server side of a manual edit.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.constants import ACTION_MANUAL_EDIT, ENTITY_RECORD
from app.models.attendance_record import AttendanceRecord, ConflictResolution
from app.schemas.attendance_record import (
    AttendanceRecordOut,
    EditValidationResponse,
    EditViolation,
    RecordEditRequest,
)
from app.schemas.results import EditResult, ErrorCode
from app.services.audit_service import log_audit
from app.services.editability_guard import can_edit
from app.services.period_service import get_period_for_update
from app.services.record_edit_validator import parse_wall_clock, validate_record_edit
from app.utils.datetime_utils import combine_local, hours_between, local_today

_log = logging.getLogger(__name__)

MSG_RECORD_NOT_FOUND = "Attendance record not found"
MSG_ACTOR_REQUIRED = "Actor id is required"
MSG_INVALID_EDIT = "Attendance record edit is invalid"
MSG_OUTSIDE_PERIOD = "Date must fall within the attendance period ({start} to {end})"
MSG_DUPLICATE_ENTRY = "Another attendance entry with the same device transaction already exists on this date"
MSG_EDIT_FAILED = "Failed to update attendance record"


def get_record(db: Session, record_id: int) -> AttendanceRecord:
    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=MSG_RECORD_NOT_FOUND)
    return record


def manual_edit_notes(reason: str) -> str:
    reason = (reason or "").strip()
    return f"Manual edit: {reason}" if reason else "Manual edit"


def _period_range_violations(record: AttendanceRecord, work_date: Optional[date]) -> List[EditViolation]:
    """A record may not be moved out of the period it belongs to."""
    period = record.period
    if period is None or work_date is None:
        return []
    if period.start_date <= work_date <= period.end_date:
        return []
    return [
        EditViolation(
            field="work_date",
            message=MSG_OUTSIDE_PERIOD.format(start=period.start_date, end=period.end_date),
        )
    ]


def _duplicate_entry_violations(db: Session, record: AttendanceRecord, work_date: Optional[date]) -> List[EditViolation]:
    """Moving the record must not collide with another row on (employee_code, work_date, transaction_id)."""
    if work_date is None or work_date == record.work_date:
        return []
    clash = (
        db.query(AttendanceRecord.id)
        .filter(
            AttendanceRecord.employee_code == record.employee_code,
            AttendanceRecord.work_date == work_date,
            AttendanceRecord.transaction_id == record.transaction_id,
            AttendanceRecord.id != record.id,
        )
        .first()
    )
    return [EditViolation(field="work_date", message=MSG_DUPLICATE_ENTRY)] if clash else []


def validate_edit(
    db: Session,
    record_id: int,
    request: RecordEditRequest,
    today: Optional[date] = None
) -> EditValidationResponse:
    """Run the edit rules against the stored record without changing anything."""
    record = get_record(db, record_id)
    violations = validate_record_edit(request, record, today=today)
    violations.extend(_period_range_violations(record, request.work_date))
    violations.extend(_duplicate_entry_violations(db, record, request.work_date))
    return EditValidationResponse(valid=not violations, violations=violations)


def _snapshot(record: AttendanceRecord) -> Dict[str, Any]:
    return {
        "work_date": record.work_date,
        "clock_in_at": record.clock_in_at,
        "clock_out_at": record.clock_out_at,
        "total_hours": record.total_hours,
        "conflict_resolution": record.conflict_resolution,
        "conflict_notes": record.conflict_notes,
    }


def _lock_record(db: Session, record_id: int) -> Optional[AttendanceRecord]:
    """
    Lock the owning period before the record, the same order finalize and
    unlock take them in, then re-read the record under its own lock.
    """
    record = db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
    if record is None:
        return None
    if record.period_id is not None:
        get_period_for_update(db, record.period_id)
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.id == record_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def edit_record(
    db: Session,
    record_id: int,
    actor_id: Optional[str],
    request: RecordEditRequest,
    today: Optional[date] = None
) -> EditResult:
    """
    Apply a manual edit to an attendance record.

    Editability and field rules are re-checked on the locked rows, so a period
    finalized after the form was opened still blocks the write. A successful
    edit marks the record CONFIRMED by the actor and writes a MANUAL_EDIT audit
    entry with before/after values in the same transaction.

    Returns:
        EditResult with the stored record, or NOT_FOUND, INVALID_STATE
        (record locked), VALIDATION_FAILED (with violations) or SYSTEM_ERROR.
    """
    if not actor_id:
        return EditResult.failure(ErrorCode.VALIDATION_FAILED, MSG_ACTOR_REQUIRED)

    try:
        record = _lock_record(db, record_id)
        if record is None:
            db.rollback()
            return EditResult.failure(ErrorCode.NOT_FOUND, MSG_RECORD_NOT_FOUND)

        decision = can_edit(record)
        if not decision.allowed:
            db.rollback()
            return EditResult.failure(ErrorCode.INVALID_STATE, decision.reason)

        violations = validate_record_edit(request, record, today=today or local_today())
        violations.extend(_period_range_violations(record, request.work_date))
        violations.extend(_duplicate_entry_violations(db, record, request.work_date))
        if violations:
            db.rollback()
            return EditResult.failure(ErrorCode.VALIDATION_FAILED, MSG_INVALID_EDIT, violations)

        before = _snapshot(record)

        clock_in = parse_wall_clock(request.clock_in)
        clock_out = parse_wall_clock(request.clock_out)
        record.work_date = request.work_date
        record.clock_in_at = combine_local(request.work_date, clock_in) if clock_in is not None else None
        record.clock_out_at = combine_local(request.work_date, clock_out) if clock_out is not None else None
        record.total_hours = hours_between(record.clock_in_at, record.clock_out_at)
        record.conflict_resolution = ConflictResolution.CONFIRMED
        record.conflict_resolved_by = actor_id
        record.conflict_notes = manual_edit_notes(request.reason)
        try:
            db.flush()
        except IntegrityError:
            # a concurrent insert took the same source key after the check above
            db.rollback()
            return EditResult.failure(
                ErrorCode.VALIDATION_FAILED,
                MSG_INVALID_EDIT,
                [EditViolation(field="work_date", message=MSG_DUPLICATE_ENTRY)],
            )

        log_audit(
            db=db,
            actor_id=actor_id,
            action=ACTION_MANUAL_EDIT,
            entity_type=ENTITY_RECORD,
            entity_id=record.id,
            before=before,
            after=_snapshot(record),
            meta={"reason": request.reason.strip(), "period_id": record.period_id},
        )

        db.refresh(record)
        record_out = AttendanceRecordOut.model_validate(record)
        db.commit()
    except Exception:
        db.rollback()
        _log.exception("Manual edit of attendance record %s by %s failed", record_id, actor_id)
        return EditResult.failure(ErrorCode.SYSTEM_ERROR, MSG_EDIT_FAILED)

    _log.info("Attendance record %s edited by %s", record_id, actor_id)
    return EditResult(success=True, record=record_out)
