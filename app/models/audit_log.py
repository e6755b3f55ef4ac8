"""
Audit log model (append-only)
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, event
from app.db.base import Base


class AuditLogImmutableError(Exception):
    """Raised when code tries to update or delete an audit entry."""

    def __init__(self, audit_id, operation: str):
        self.audit_id = audit_id
        self.operation = operation
        super().__init__(f"Audit entry {audit_id} is append-only and cannot be {operation}")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(String, nullable=False, index=True)  # Opaque actor identity from the session layer
    action = Column(String, nullable=False)  # e.g. "FINALIZE_ATTENDANCE_PERIOD"
    entity_type = Column(String, nullable=False)  # e.g. "attendance_periods", "attendance_records"
    entity_id = Column(Integer, nullable=True, index=True)
    meta_json = Column(JSON, nullable=True)  # {"before": {...}, "after": {...}, ...}
    # Set explicitly by audit_service to avoid SQLite server_default issues
    created_at = Column(DateTime(timezone=True), nullable=False)


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise AuditLogImmutableError(target.id, "updated")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise AuditLogImmutableError(target.id, "deleted")
