"""
Row access evaluator

Decides, for (actor, action, resource type, resource), whether the action is
allowed. Composes the role hierarchy, the department scope resolver and the
visibility filter. Stateless: every decision derives from the arguments, with
department assignments read through the request-scoped ``DepartmentScope``.

Any denial on a row the actor cannot read is reported as NOT_FOUND, so a
staff member asking for another user's entry id sees the same answer as for an
id that does not exist.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import Forbidden, NotFound, SelfModificationDenied
from app.models import RESOURCE_MODELS
from app.models.user import Role
from app.services.department_scope import DepartmentScope
from app.services.visibility_service import field, is_visible
from app.utils.enums import AccessAction, DenyReason, ResourceType, MASTER_DATA_TYPES
from app.utils.roles import as_role, can_assign, is_admin_role

logger = logging.getLogger(__name__)

# User fields only admins may change; anything else is a profile field
PRIVILEGED_USER_FIELDS = frozenset({"email", "role", "department_id", "is_active"})

# Time entry fields that move an entry to another owner or department
ENTRY_OWNERSHIP_FIELDS = frozenset({"user_id", "department_id"})


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        """Raise the typed error matching the deny reason"""
        if self.allowed:
            return
        if self.reason == DenyReason.NOT_FOUND:
            raise NotFound()
        if self.reason == DenyReason.SELF_MODIFICATION:
            raise SelfModificationDenied()
        raise Forbidden()


ALLOW = AccessDecision(True)


def deny(reason: DenyReason) -> AccessDecision:
    return AccessDecision(False, reason)


def _empty_scope() -> DepartmentScope:
    # Without assignment data a manager sees only their home department
    return DepartmentScope.from_assignments({})


def _can_read_entry(actor, role: Role, entry: Any, scope: DepartmentScope) -> bool:
    if not is_visible(actor, ResourceType.TIME_ENTRY, entry):
        return False
    if field(entry, "user_id") == actor.id or is_admin_role(role):
        return True
    return role == Role.MANAGER and scope.can_access_department(actor, field(entry, "department_id"))


def _evaluate_time_entry(actor, role, action, entry, scope, changes) -> AccessDecision:
    if action == AccessAction.INSERT:
        # Without a concrete row the question is "may this actor log time at all"
        if entry is None:
            return ALLOW
        if field(entry, "user_id") != actor.id:
            return deny(DenyReason.FORBIDDEN)
        # Entries are filed under the owner's home department
        department_id = field(entry, "department_id")
        if role != Role.SUPER_ADMIN and department_id is not None and department_id != actor.department_id:
            return deny(DenyReason.FORBIDDEN)
        return ALLOW

    if entry is None or not _can_read_entry(actor, role, entry, scope):
        return deny(DenyReason.NOT_FOUND)

    if action == AccessAction.READ:
        return ALLOW

    if role == Role.SUPER_ADMIN:
        return ALLOW
    if field(entry, "user_id") != actor.id:
        return deny(DenyReason.FORBIDDEN)
    if changes:
        for name in ENTRY_OWNERSHIP_FIELDS & set(changes):
            if changes[name] != field(entry, name):
                return deny(DenyReason.FORBIDDEN)
    return ALLOW


def _evaluate_master_data(actor, role, action, resource_type, row) -> AccessDecision:
    if action == AccessAction.READ:
        if row is None or is_visible(actor, resource_type, row):
            return ALLOW
        return deny(DenyReason.NOT_FOUND)

    if is_admin_role(role):
        if row is None and action != AccessAction.INSERT:
            return deny(DenyReason.NOT_FOUND)
        return ALLOW

    if row is not None and action != AccessAction.INSERT and not is_visible(actor, resource_type, row):
        return deny(DenyReason.NOT_FOUND)
    return deny(DenyReason.FORBIDDEN)


def _evaluate_user(actor, role, action, target, changes) -> AccessDecision:
    admin = is_admin_role(role)

    if action == AccessAction.READ:
        if target is None or admin or field(target, "id") == actor.id:
            return ALLOW
        return deny(DenyReason.NOT_FOUND)

    if action == AccessAction.INSERT:
        if not admin:
            return deny(DenyReason.FORBIDDEN)
        new_role = field(target, "role") if target is not None else None
        if new_role is not None and not can_assign(role, new_role):
            return deny(DenyReason.ROLE_NOT_ASSIGNABLE)
        return ALLOW

    if target is None:
        return deny(DenyReason.NOT_FOUND)

    is_self = field(target, "id") == actor.id
    if not admin and not is_self:
        return deny(DenyReason.NOT_FOUND)

    if action == AccessAction.UPDATE and changes is not None:
        privileged = PRIVILEGED_USER_FIELDS & set(changes)
        if not privileged:
            return ALLOW
    if not admin:
        return deny(DenyReason.FORBIDDEN)

    # An admin may only touch accounts whose role they could have assigned
    if not can_assign(role, field(target, "role")):
        return deny(DenyReason.ROLE_NOT_ASSIGNABLE)
    if changes and changes.get("role") is not None and not can_assign(role, changes["role"]):
        return deny(DenyReason.ROLE_NOT_ASSIGNABLE)
    return ALLOW


def evaluate(
    actor,
    action: AccessAction,
    resource_type: ResourceType,
    resource: Any = None,
    scope: Optional[DepartmentScope] = None,
    changes: Optional[Mapping[str, Any]] = None,
) -> AccessDecision:
    """
    Evaluate one access request.

    Args:
        actor: The authenticated user (needs id, role, department_id, is_active)
        action: read / insert / update / delete
        resource_type: Which table the resource lives in
        resource: The row (ORM instance or dict); for inserts, the proposed row.
            None asks about the action in general (e.g. listing).
        scope: Request-scoped department scope; managers fall back to their
            home department when omitted
        changes: Field values an update actually changes, used for user role
            checks and entry ownership checks

    Returns:
        AccessDecision with a structured deny reason
    """
    action = AccessAction(action)
    resource_type = ResourceType(resource_type)

    if actor is None or not getattr(actor, "is_active", True):
        return deny(DenyReason.INACTIVE_ACTOR)

    role = as_role(actor.role)
    scope = scope or _empty_scope()

    if resource_type == ResourceType.TIME_ENTRY:
        return _evaluate_time_entry(actor, role, action, resource, scope, changes)
    if resource_type in MASTER_DATA_TYPES:
        return _evaluate_master_data(actor, role, action, resource_type, resource)
    if resource_type == ResourceType.USER:
        return _evaluate_user(actor, role, action, resource, changes)
    if resource_type == ResourceType.AUDIT_LOG:
        if not is_admin_role(role):
            return deny(DenyReason.NOT_FOUND)
        # Append-only: nobody writes audit rows through the evaluator
        return ALLOW if action == AccessAction.READ else deny(DenyReason.FORBIDDEN)

    return deny(DenyReason.FORBIDDEN)


def authorize(
    actor,
    action: AccessAction,
    resource_type: ResourceType,
    resource: Any = None,
    scope: Optional[DepartmentScope] = None,
    changes: Optional[Mapping[str, Any]] = None,
) -> AccessDecision:
    """evaluate() for callers about to mutate; denials are logged"""
    decision = evaluate(actor, action, resource_type, resource, scope=scope, changes=changes)
    if not decision.allowed:
        logger.info(
            "Access denied: actor=%s action=%s resource=%s id=%s reason=%s",
            getattr(actor, "id", None),
            AccessAction(action).value,
            ResourceType(resource_type).value,
            field(resource, "id") if resource is not None else None,
            decision.reason.value,
        )
    return decision


def can_read(actor, resource_type: ResourceType, resource: Any, scope: Optional[DepartmentScope] = None) -> bool:
    return evaluate(actor, AccessAction.READ, resource_type, resource, scope=scope).allowed


def filter_visible(
    actor,
    resource_type: ResourceType,
    rows: Iterable[Any],
    scope: Optional[DepartmentScope] = None,
) -> List[Any]:
    """Keep only the rows ``actor`` may read"""
    scope = scope or _empty_scope()
    return [row for row in rows if can_read(actor, resource_type, row, scope)]


def get_visible(
    db: Session,
    actor,
    resource_type: ResourceType,
    record_id: int,
    scope: Optional[DepartmentScope] = None,
) -> Any:
    """
    Fetch one row by id for ``actor``.

    Raises:
        NotFound: If the row does not exist or the actor may not read it
    """
    model = RESOURCE_MODELS[ResourceType(resource_type)]
    row = db.get(model, record_id)
    if row is None or not can_read(actor, resource_type, row, scope):
        raise NotFound()
    return row


def list_visible(
    db: Session,
    actor,
    resource_type: ResourceType,
    scope: Optional[DepartmentScope] = None,
    active_only: Optional[bool] = None,
    parent_id: Optional[int] = None,
) -> List[Any]:
    """
    List master data or users visible to ``actor``.

    ``parent_id`` narrows projects to a client and jobs to a project.
    """
    resource_type = ResourceType(resource_type)
    if not evaluate(actor, AccessAction.READ, resource_type, scope=scope).allowed:
        return []

    model = RESOURCE_MODELS[resource_type]
    query = db.query(model)

    if resource_type in MASTER_DATA_TYPES:
        if active_only is not None:
            query = query.filter(model.active.is_(active_only))
        if parent_id is not None:
            parent_column = {
                ResourceType.PROJECT: "client_id",
                ResourceType.JOB: "project_id",
            }.get(resource_type)
            if parent_column is not None:
                query = query.filter(getattr(model, parent_column) == parent_id)
        query = query.order_by(model.name, model.id)
    elif resource_type == ResourceType.USER:
        if not is_admin_role(actor.role):
            query = query.filter(model.id == actor.id)
        query = query.order_by(model.display_name, model.id)
    else:
        raise ValueError(f"{resource_type.value} is not listed through list_visible")

    return filter_visible(actor, resource_type, query.all(), scope)
