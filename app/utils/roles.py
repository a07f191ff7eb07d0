"""
Role hierarchy: static ordering of roles and which roles each role may assign

staff < manager < admin < super_admin. Pure lookups, no state.
"""
from typing import FrozenSet, Union

from app.models.user import Role

ROLE_LEVELS = {
    Role.STAFF: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 4,
}

ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})

_ASSIGNABLE = {
    Role.STAFF: frozenset(),
    Role.MANAGER: frozenset(),
    Role.ADMIN: frozenset({Role.STAFF, Role.MANAGER, Role.ADMIN}),
    Role.SUPER_ADMIN: frozenset(Role),
}


def role_name(role) -> str:
    """
    Safely extract role name from either enum or string

    Args:
        role: Either a Role enum instance or a string

    Returns:
        str: The role name as string
    """
    return role.value if hasattr(role, "value") else str(role)


def as_role(role: Union[Role, str]) -> Role:
    """Coerce a stored role string to Role. Raises ValueError for unknown roles."""
    if isinstance(role, Role):
        return role
    return Role(str(role).lower())


def role_level(role: Union[Role, str]) -> int:
    """Numeric level (1-4); higher level means more permissions"""
    return ROLE_LEVELS[as_role(role)]


def is_admin_role(role: Union[Role, str]) -> bool:
    return as_role(role) in ADMIN_ROLES


def assignable_roles(actor_role: Union[Role, str]) -> FrozenSet[Role]:
    """Roles an actor with ``actor_role`` may grant to other users"""
    return _ASSIGNABLE[as_role(actor_role)]


def can_assign(actor_role: Union[Role, str], target_role: Union[Role, str]) -> bool:
    """
    Whether ``actor_role`` may assign ``target_role``.

    Re-assigning a user's current role still goes through this check.
    """
    return as_role(target_role) in assignable_roles(actor_role)
