"""
Self-modification guard

Blocks an actor from changing their own role or deactivating themselves,
even when the role hierarchy would otherwise allow it. Runs after the row
access evaluator has approved the base action, never instead of it.
"""
from typing import Any, Mapping, Set

from app.services.access_service import ALLOW, AccessDecision, deny
from app.utils.enums import ChangeType, DenyReason
from app.utils.roles import role_name

GUARDED_CHANGES = frozenset({ChangeType.ROLE_CHANGE, ChangeType.DEACTIVATION})


def guard_self_change(actor_id: int, target_id: int, change_type: ChangeType) -> AccessDecision:
    if actor_id == target_id and ChangeType(change_type) in GUARDED_CHANGES:
        return deny(DenyReason.SELF_MODIFICATION)
    return ALLOW


def classify_user_changes(target: Any, changes: Mapping[str, Any]) -> Set[ChangeType]:
    """Change types implied by the fields of ``changes`` that differ from ``target``"""
    kinds = set()
    for name, value in changes.items():
        current = getattr(target, name, None)
        if name == "role":
            if role_name(value) != role_name(current):
                kinds.add(ChangeType.ROLE_CHANGE)
        elif name == "is_active":
            if current and not value:
                kinds.add(ChangeType.DEACTIVATION)
        elif name == "department_id":
            if value != current:
                kinds.add(ChangeType.DEPARTMENT_CHANGE)
        elif value != current:
            kinds.add(ChangeType.PROFILE_CHANGE)
    return kinds


def guard_user_changes(actor, target: Any, changes: Mapping[str, Any]) -> AccessDecision:
    for change_type in classify_user_changes(target, changes):
        decision = guard_self_change(actor.id, target.id, change_type)
        if not decision.allowed:
            return decision
    return ALLOW
