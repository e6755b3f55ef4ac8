"""
Audit logging service
"""
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json


def log_audit(
    db: Session,
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Append an audit entry to the caller's open transaction.

    The entry is flushed, not committed: it becomes durable together with the
    state change it describes, and a failure here aborts that change.

    Args:
        db: Database session (inside the caller's transaction)
        actor_id: Opaque identity of the user performing the action
        action: Action type (e.g., "FINALIZE_ATTENDANCE_PERIOD")
        entity_type: Type of entity (e.g., "attendance_periods")
        entity_id: ID of the affected entity (optional)
        before: Summary of the entity before the change (optional)
        after: Summary of the entity after the change (optional)
        meta: Additional action-specific fields (optional)

    Returns:
        Created AuditLog instance
    """
    payload: Dict[str, Any] = dict(meta or {})
    if before is not None:
        payload["before"] = before
    if after is not None:
        payload["after"] = after

    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=sanitize_for_json(payload) if payload else None,
        created_at=now_utc()
    )
    db.add(audit_log)
    db.flush()
    return audit_log


def list_audit_entries(
    db: Session,
    entity_type: str,
    entity_id: int
) -> List[AuditLog]:
    """Audit history of one entity, oldest first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at, AuditLog.id)
        .all()
    )
