"""
Database models
"""
from app.models.audit_log import AuditLog, AuditLogImmutableError
from app.models.attendance_period import AttendancePeriod, PeriodStatus, LOCKED_STATUSES
from app.models.attendance_record import AttendanceRecord, ConflictResolution

__all__ = [
    "AuditLog",
    "AuditLogImmutableError",
    "AttendancePeriod",
    "PeriodStatus",
    "LOCKED_STATUSES",
    "AttendanceRecord",
    "ConflictResolution",
]
