"""Enums shared by the access core, plus a helper for handling enum/string values safely."""
import enum
from enum import Enum


class AccessAction(str, enum.Enum):
    READ = "read"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ResourceType(str, enum.Enum):
    TIME_ENTRY = "time_entries"
    CLIENT = "clients"
    PROJECT = "projects"
    JOB = "jobs"
    SERVICE = "services"
    TASK = "tasks"
    DEPARTMENT = "departments"
    USER = "users"
    AUDIT_LOG = "audit_logs"


# Master data: governed by an active flag, never soft-deleted
MASTER_DATA_TYPES = frozenset({
    ResourceType.CLIENT,
    ResourceType.PROJECT,
    ResourceType.JOB,
    ResourceType.SERVICE,
    ResourceType.TASK,
    ResourceType.DEPARTMENT,
})


class DenyReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    ROLE_NOT_ASSIGNABLE = "role_not_assignable"
    SELF_MODIFICATION = "self_modification"
    INACTIVE_ACTOR = "inactive_actor"


class ChangeType(str, enum.Enum):
    ROLE_CHANGE = "role_change"
    DEACTIVATION = "deactivation"
    DEPARTMENT_CHANGE = "department_change"
    PROFILE_CHANGE = "profile_change"


def enum_to_str(v):
    """
    Safely convert enum or string value to string.

    Args:
        v: Can be Enum, string, or any value

    Returns:
        str: String representation of the value

    Examples:
        >>> enum_to_str(ResourceType.CLIENT)
        'clients'
        >>> enum_to_str('clients')
        'clients'
        >>> enum_to_str(None)
    """
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    return str(v)
