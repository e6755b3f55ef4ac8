"""
Tests for the period unlock transaction
"""
from app.constants import ACTION_UNLOCK_PERIOD
from app.models.attendance_period import AttendancePeriod, PeriodStatus
from app.models.attendance_record import AttendanceRecord
from app.models.audit_log import AuditLog
from app.schemas.results import ErrorCode
from app.services.finalization_service import finalize_period, unlock_period


def _finalized_period(db, make_period, make_record, records=2):
    period = make_period()
    for n in range(records):
        make_record(period=period, employee_code=f"EMP{n:03d}")
    assert finalize_period(db, period.id, "hr-1").success is True
    return period


def test_unlock_returns_period_to_pending(db, make_period, make_record):
    period = _finalized_period(db, make_period, make_record)

    result = unlock_period(db, period.id, "admin-1", "Payroll correction for EMP001")

    assert result.success is True
    assert result.affected_record_count == 2
    assert result.period.status == PeriodStatus.PENDING
    assert result.period.unlock_reason == "Payroll correction for EMP001"

    db.expire_all()
    records = db.query(AttendanceRecord).filter(AttendanceRecord.period_id == period.id).all()
    assert not any(r.is_finalized for r in records)


def test_unlock_keeps_finalization_history(db, make_period, make_record):
    period = _finalized_period(db, make_period, make_record)

    unlock_period(db, period.id, "admin-1", "reopen")

    db.expire_all()
    period = db.query(AttendancePeriod).filter(AttendancePeriod.id == period.id).one()
    assert period.finalized_by == "hr-1"
    assert period.finalized_at is not None


def test_unlock_writes_audit_entry(db, make_period, make_record):
    period = _finalized_period(db, make_period, make_record)

    unlock_period(db, period.id, "admin-1", "  late approval  ")

    entry = db.query(AuditLog).filter(AuditLog.action == ACTION_UNLOCK_PERIOD).one()
    assert entry.actor_id == "admin-1"
    assert entry.meta_json["reason"] == "late approval"
    assert entry.meta_json["before"] == {"status": "FINALIZED"}
    assert entry.meta_json["after"] == {"status": "PENDING"}


def test_unlock_requires_reason(db, make_period, make_record):
    period = _finalized_period(db, make_period, make_record)

    result = unlock_period(db, period.id, "admin-1", "   ")

    assert result.success is False
    assert result.error_code == ErrorCode.VALIDATION_FAILED
    assert result.errors[0].message == "Unlock reason is required"
    db.expire_all()
    assert db.query(AttendancePeriod).filter(AttendancePeriod.id == period.id).one().status == PeriodStatus.FINALIZED


def test_unlock_pending_period_is_invalid_state(db, make_period):
    period = make_period()

    result = unlock_period(db, period.id, "admin-1", "why not")

    assert result.error_code == ErrorCode.INVALID_STATE
    assert result.errors[0].message == "Only finalized periods can be unlocked"


def test_unlock_locked_period_is_refused(db, make_period):
    period = make_period(status=PeriodStatus.LOCKED)

    result = unlock_period(db, period.id, "admin-1", "payroll rerun")

    assert result.error_code == ErrorCode.INVALID_STATE
    assert "administrative procedure" in result.errors[0].message


def test_unlock_missing_period(db):
    result = unlock_period(db, 12345, "admin-1", "reason")

    assert result.error_code == ErrorCode.NOT_FOUND


def test_finalize_after_unlock(db, make_period, make_record):
    period = _finalized_period(db, make_period, make_record)
    assert unlock_period(db, period.id, "admin-1", "fix").success is True

    result = finalize_period(db, period.id, "hr-2")

    assert result.success is True
    assert result.period.finalized_by == "hr-2"
    actions = [e.action for e in db.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == [
        "FINALIZE_ATTENDANCE_PERIOD",
        "UNLOCK_ATTENDANCE_PERIOD",
        "FINALIZE_ATTENDANCE_PERIOD",
    ]
