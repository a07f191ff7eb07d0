"""
Database models
"""
from app.models.department import Department
from app.models.user import User, Role
from app.models.manager_department import ManagerDepartment
from app.models.master_data import Client, Project, Job, Service, Task
from app.models.time_entry import TimeEntry
from app.models.audit_log import AuditLog, AuditAction
from app.utils.enums import ResourceType

# Model backing each resource type the access core governs
RESOURCE_MODELS = {
    ResourceType.TIME_ENTRY: TimeEntry,
    ResourceType.CLIENT: Client,
    ResourceType.PROJECT: Project,
    ResourceType.JOB: Job,
    ResourceType.SERVICE: Service,
    ResourceType.TASK: Task,
    ResourceType.DEPARTMENT: Department,
    ResourceType.USER: User,
    ResourceType.AUDIT_LOG: AuditLog,
}

__all__ = [
    "Department",
    "User",
    "Role",
    "ManagerDepartment",
    "Client",
    "Project",
    "Job",
    "Service",
    "Task",
    "TimeEntry",
    "AuditLog",
    "AuditAction",
    "RESOURCE_MODELS",
]
