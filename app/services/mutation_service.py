"""
Mutation service - the only path by which governed rows are written

apply_mutation() authorizes the request, runs the self-modification guard,
writes the row and records its audit entry, all in one transaction. If any
step fails, including the audit write, nothing is committed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AccessError, ConstraintViolation, Forbidden, NotFound
from app.models import RESOURCE_MODELS
from app.models.audit_log import AuditAction
from app.models.manager_department import ManagerDepartment
from app.models.user import Role
from app.services import audit_service
from app.services.access_service import authorize
from app.services.department_scope import DepartmentScope, load_managed_department_ids
from app.services.self_change_guard import guard_self_change, guard_user_changes
from app.services.visibility_service import ensure_selectable
from app.utils.datetime_utils import ensure_utc, now_utc
from app.utils.enums import AccessAction, ChangeType, ResourceType
from app.utils.json_serializer import row_snapshot
from app.utils.roles import as_role, role_name

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = {
    ResourceType.TIME_ENTRY: frozenset({
        "user_id", "department_id", "job_id", "service_id", "task_id",
        "duration_minutes", "entry_date", "notes", "deleted_at",
    }),
    ResourceType.CLIENT: frozenset({"name", "active"}),
    ResourceType.PROJECT: frozenset({"client_id", "name", "active"}),
    ResourceType.JOB: frozenset({"project_id", "name", "job_no", "active"}),
    ResourceType.SERVICE: frozenset({"name", "active"}),
    ResourceType.TASK: frozenset({"name", "active"}),
    ResourceType.DEPARTMENT: frozenset({"name", "active"}),
    ResourceType.USER: frozenset({
        "email", "display_name", "role", "department_id", "is_active", "password_hash",
    }),
}

# References a new or edited entry must be able to select
ENTRY_SELECTIONS = {
    "job_id": ResourceType.JOB,
    "service_id": ResourceType.SERVICE,
    "task_id": ResourceType.TASK,
    "department_id": ResourceType.DEPARTMENT,
}

LABELS = {
    ResourceType.TIME_ENTRY: "Time entry",
    ResourceType.CLIENT: "Client",
    ResourceType.PROJECT: "Project",
    ResourceType.JOB: "Job",
    ResourceType.SERVICE: "Service",
    ResourceType.TASK: "Task",
    ResourceType.DEPARTMENT: "Department",
    ResourceType.USER: "User",
}


@dataclass
class MutationResult:
    resource: Any
    audit_entry_id: Optional[int]
    # False when the row was already in the requested state (no audit written)
    changed: bool = True
    # The user just became a manager and has no departments assigned yet
    became_manager: bool = False


def _writable(resource_type: ResourceType, payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = WRITABLE_FIELDS[resource_type]
    data = {k: v for k, v in payload.items() if k in allowed}
    if "role" in data and data["role"] is not None:
        data["role"] = role_name(as_role(data["role"]))
    return data


def _differs(current: Any, value: Any) -> bool:
    if isinstance(current, datetime) and isinstance(value, datetime):
        return ensure_utc(current) != ensure_utc(value)
    return current != value


def _owner_id(resource_type: ResourceType, instance: Any) -> Optional[int]:
    if resource_type == ResourceType.TIME_ENTRY:
        return instance.user_id
    if resource_type == ResourceType.USER:
        return instance.id
    return None


def _load(db: Session, resource_type: ResourceType, payload: Mapping[str, Any]) -> Any:
    record_id = payload.get("id")
    if record_id is None:
        raise NotFound()
    instance = db.get(RESOURCE_MODELS[resource_type], record_id)
    if instance is None:
        raise NotFound()
    return instance


def _constraint_message(resource_type: ResourceType, action: AccessAction, exc: IntegrityError) -> str:
    label = LABELS[resource_type]
    if action == AccessAction.DELETE:
        return f"{label} is still in use and cannot be deleted"
    if "unique" in str(exc.orig).lower():
        return f"{label} already exists"
    return f"{label} violates a data constraint"


def _insert(db, actor, resource_type, data, scope) -> MutationResult:
    if resource_type == ResourceType.TIME_ENTRY:
        data.pop("deleted_at", None)
        data.setdefault("user_id", actor.id)
        if data.get("department_id") is None and data["user_id"] == actor.id:
            data["department_id"] = actor.department_id
    if resource_type == ResourceType.USER:
        data.setdefault("role", Role.STAFF.value)

    authorize(actor, AccessAction.INSERT, resource_type, data, scope=scope).raise_for_denial()

    if resource_type == ResourceType.TIME_ENTRY:
        for name, ref_type in ENTRY_SELECTIONS.items():
            if data.get(name) is not None:
                ensure_selectable(db, ref_type, data[name])

    instance = RESOURCE_MODELS[resource_type](**data)
    db.add(instance)
    db.flush()

    entry = audit_service.record_mutation(
        db,
        resource_type.value,
        instance.id,
        AuditAction.INSERT,
        None,
        row_snapshot(instance),
        actor.id,
        user_id=_owner_id(resource_type, instance),
    )
    became_manager = resource_type == ResourceType.USER and as_role(instance.role) == Role.MANAGER
    return MutationResult(instance, entry.id, True, became_manager)


def _update(db, actor, resource_type, payload, data, scope, requested_action) -> MutationResult:
    instance = _load(db, resource_type, payload)
    changes = {k: v for k, v in data.items() if _differs(getattr(instance, k), v)}

    if getattr(instance, "deleted_at", None) is not None and changes.get("deleted_at") is not None:
        # Already deleted; keep the first deletion time
        changes.pop("deleted_at")

    soft_delete = (
        resource_type == ResourceType.TIME_ENTRY
        and instance.deleted_at is None
        and changes.get("deleted_at") is not None
    )
    access_action = AccessAction.DELETE if soft_delete else requested_action

    authorize(actor, access_action, resource_type, instance, scope=scope, changes=changes).raise_for_denial()

    if not changes:
        logger.info(
            "No-op %s on %s id=%s: already in target state",
            access_action.value, resource_type.value, instance.id,
        )
        return MutationResult(instance, None, changed=False)

    if resource_type == ResourceType.USER:
        guard_user_changes(actor, instance, changes).raise_for_denial()

    if resource_type == ResourceType.TIME_ENTRY:
        for name, ref_type in ENTRY_SELECTIONS.items():
            if changes.get(name) is not None:
                ensure_selectable(db, ref_type, changes[name])

    old_data = row_snapshot(instance)
    previous_role = as_role(instance.role) if resource_type == ResourceType.USER else None

    for name, value in changes.items():
        setattr(instance, name, value)

    became_manager = False
    if resource_type == ResourceType.USER and "role" in changes:
        new_role = as_role(changes["role"])
        if previous_role == Role.MANAGER and new_role != Role.MANAGER:
            removed = db.query(ManagerDepartment).filter(
                ManagerDepartment.manager_id == instance.id
            ).delete(synchronize_session=False)
            db.expire(instance, ["managed_departments"])
            if scope is not None:
                scope.invalidate(instance.id)
            logger.info("Cleared %d department assignments for former manager id=%s", removed, instance.id)
        elif new_role == Role.MANAGER and previous_role != Role.MANAGER:
            became_manager = not load_managed_department_ids(db, instance.id)

    db.flush()

    entry = audit_service.record_mutation(
        db,
        resource_type.value,
        instance.id,
        AuditAction.DELETE if soft_delete else AuditAction.UPDATE,
        old_data,
        None if soft_delete else row_snapshot(instance),
        actor.id,
        user_id=_owner_id(resource_type, instance),
    )
    return MutationResult(instance, entry.id, True, became_manager)


def _delete(db, actor, resource_type, payload, scope) -> MutationResult:
    if resource_type == ResourceType.TIME_ENTRY:
        instance = _load(db, resource_type, payload)
        if instance.deleted_at is not None and instance.user_id == actor.id and actor.is_active:
            # The owner retrying a delete they already made
            logger.info("No-op delete on time_entries id=%s: already deleted", instance.id)
            return MutationResult(instance, None, changed=False)
        # Entries are never removed; deletion stamps deleted_at
        return _update(
            db, actor, resource_type, payload, {"deleted_at": now_utc()}, scope, AccessAction.DELETE
        )

    instance = _load(db, resource_type, payload)
    authorize(actor, AccessAction.DELETE, resource_type, instance, scope=scope).raise_for_denial()

    if resource_type == ResourceType.USER:
        guard_self_change(actor.id, instance.id, ChangeType.DEACTIVATION).raise_for_denial()

    old_data = row_snapshot(instance)
    owner_id = _owner_id(resource_type, instance)
    record_id = instance.id

    db.delete(instance)
    db.flush()

    entry = audit_service.record_mutation(
        db,
        resource_type.value,
        record_id,
        AuditAction.DELETE,
        old_data,
        None,
        actor.id,
        user_id=owner_id,
    )
    return MutationResult(None, entry.id, True)


def apply_mutation(
    db: Session,
    actor,
    action: AccessAction,
    resource_type: ResourceType,
    payload: Mapping[str, Any],
    scope: Optional[DepartmentScope] = None,
) -> MutationResult:
    """
    Authorize, guard, write and audit one mutation as a single transaction

    Args:
        db: Database session; committed on success, rolled back on any failure
        actor: The authenticated user performing the mutation
        action: insert, update or delete
        resource_type: Target table
        payload: Column values; updates and deletes carry the row ``id``
        scope: Request-scoped department scope (built from ``db`` if omitted)

    Returns:
        MutationResult with the written row and its audit entry id

    Raises:
        NotFound / Forbidden / SelfModificationDenied: Policy denials
        ConstraintViolation: Store constraint errors and invalid selections
        AuditWriteFailed: The audit entry could not be written
    """
    action = AccessAction(action)
    resource_type = ResourceType(resource_type)

    if action == AccessAction.READ:
        raise ValueError("apply_mutation() does not handle reads")
    if resource_type not in WRITABLE_FIELDS:
        # Audit log is append-only and written only as a side effect
        raise Forbidden()

    scope = scope or DepartmentScope.for_session(db)
    data = _writable(resource_type, payload)

    try:
        if action == AccessAction.INSERT:
            result = _insert(db, actor, resource_type, data, scope)
        elif action == AccessAction.UPDATE:
            result = _update(db, actor, resource_type, payload, data, scope, action)
        else:
            result = _delete(db, actor, resource_type, payload, scope)

        if result.changed:
            db.commit()
    except AccessError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Constraint violation on %s %s: %s", action.value, resource_type.value, exc.orig)
        raise ConstraintViolation(_constraint_message(resource_type, action, exc)) from exc
    except Exception:
        db.rollback()
        logger.exception("Mutation %s on %s failed; rolled back", action.value, resource_type.value)
        raise

    if result.changed:
        if result.resource is not None:
            db.refresh(result.resource)
        logger.info(
            "Committed %s on %s by actor=%s (audit id=%s)",
            action.value, resource_type.value, actor.id, result.audit_entry_id,
        )
    return result
