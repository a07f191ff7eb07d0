"""
Audit logging service

Writes one append-only row per mutation inside the caller's transaction and
serves audit reads to admins. Non-admin readers get an empty list rather
than an error.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuditWriteFailed
from app.models.audit_log import AuditAction, AuditLog
from app.services.access_service import evaluate
from app.utils.datetime_utils import now_utc
from app.utils.enums import AccessAction, ResourceType, enum_to_str
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def _check_shape(action: AuditAction, old_data, new_data) -> None:
    expected = {
        AuditAction.INSERT: (False, True),
        AuditAction.UPDATE: (True, True),
        AuditAction.DELETE: (True, False),
    }[action]
    if (old_data is not None, new_data is not None) != expected:
        raise AuditWriteFailed(f"Malformed {action.value} audit entry")


def record_mutation(
    db: Session,
    table_name: str,
    record_id: int,
    action: AuditAction,
    old_data: Optional[Dict[str, Any]],
    new_data: Optional[Dict[str, Any]],
    actor_id: int,
    user_id: Optional[int] = None,
) -> AuditLog:
    """
    Create an audit log entry in the current transaction

    The entry is flushed, not committed; the caller commits it together with
    the mutation it documents.

    Args:
        db: Database session holding the mutation
        table_name: Audited table (e.g. "time_entries")
        record_id: ID of the mutated row
        action: INSERT, UPDATE or DELETE
        old_data: Full row before the change (None for INSERT)
        new_data: Full row after the change (None for DELETE)
        actor_id: ID of the user performing the mutation
        user_id: Owner of the mutated row, when it has one

    Returns:
        Created AuditLog instance

    Raises:
        AuditWriteFailed: If the entry is malformed or cannot be written; the
            caller must roll back the mutation
    """
    action = AuditAction(action)
    _check_shape(action, old_data, new_data)

    # Explicitly set created_at to avoid SQLite issues with server_default
    audit_log = AuditLog(
        table_name=enum_to_str(table_name),
        record_id=record_id,
        action=action.value,
        old_data=sanitize_for_json(old_data),
        new_data=sanitize_for_json(new_data),
        actor_id=actor_id,
        user_id=user_id,
        created_at=now_utc(),
    )
    try:
        db.add(audit_log)
        db.flush()
    except SQLAlchemyError as exc:
        logger.error("Audit write failed for %s id=%s: %s", table_name, record_id, exc)
        raise AuditWriteFailed() from exc
    return audit_log


def list_audit_logs(
    db: Session,
    actor,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    user_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[AuditLog]:
    """
    Audit entries visible to ``actor``, newest first

    Managers and staff always get an empty list.
    """
    if not evaluate(actor, AccessAction.READ, ResourceType.AUDIT_LOG).allowed:
        return []

    query = db.query(AuditLog)
    if table_name is not None:
        query = query.filter(AuditLog.table_name == enum_to_str(table_name))
    if record_id is not None:
        query = query.filter(AuditLog.record_id == record_id)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if start is not None:
        query = query.filter(AuditLog.created_at >= start)
    if end is not None:
        query = query.filter(AuditLog.created_at <= end)

    return (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(settings.clamp_audit_limit(limit))
        .all()
    )


def get_audit_logs_for_record(db: Session, actor, table_name: str, record_id: int) -> List[AuditLog]:
    """All audit records (INSERT, UPDATE, DELETE) for one row"""
    return list_audit_logs(
        db, actor, table_name=table_name, record_id=record_id, limit=settings.AUDIT_LOG_MAX_LIMIT
    )


def get_audit_logs_by_user(db: Session, actor, user_id: int, limit: int = 50) -> List[AuditLog]:
    """Audit records for rows owned by ``user_id``"""
    return list_audit_logs(db, actor, user_id=user_id, limit=limit)


def get_audit_logs_by_date_range(
    db: Session,
    actor,
    start: datetime,
    end: datetime,
    limit: int = 100,
) -> List[AuditLog]:
    """Audit records created between ``start`` and ``end`` (inclusive)"""
    return list_audit_logs(db, actor, start=start, end=end, limit=limit)
