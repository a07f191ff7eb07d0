"""
Visibility filter and selection policy

Two independent row-level mechanisms:

* Soft delete (time entries): a row with ``deleted_at`` set is invisible to
  everyone except super_admin.
* Active flag (master data): only the row's own ``active`` flag counts.
  Deactivating a client never hides its still-active projects or jobs.
  Inactive rows stay visible to admin/super_admin.

Selection (what may be offered or newly referenced when creating entries) is
narrower than visibility: only active rows, and only under active parents.
"""
import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ConstraintViolation
from app.models.department import Department
from app.models.master_data import Client, Project, Job, Service, Task
from app.models.user import Role
from app.utils.enums import ResourceType, MASTER_DATA_TYPES
from app.utils.roles import as_role, is_admin_role

logger = logging.getLogger(__name__)

SELECTION_LABELS = {
    ResourceType.JOB: "Job",
    ResourceType.SERVICE: "Service",
    ResourceType.TASK: "Task",
    ResourceType.DEPARTMENT: "Department",
}


def field(row: Any, name: str, default: Any = None) -> Any:
    """Read a column from either an ORM row or a plain dict"""
    if isinstance(row, dict):
        return row.get(name, default)
    return getattr(row, name, default)


def is_soft_deleted(row: Any) -> bool:
    return field(row, "deleted_at") is not None


def is_visible(actor, resource_type: ResourceType, row: Any) -> bool:
    """Soft-delete and active-flag visibility for a single row"""
    resource_type = ResourceType(resource_type)
    role = as_role(actor.role)

    if resource_type == ResourceType.TIME_ENTRY:
        return role == Role.SUPER_ADMIN or not is_soft_deleted(row)

    if resource_type in MASTER_DATA_TYPES:
        return is_admin_role(role) or bool(field(row, "active", True))

    return True


def is_selectable(row: Any) -> bool:
    """Only active rows may be offered as a new selection"""
    return row is not None and bool(field(row, "active", False))


def list_selectable(
    db: Session,
    resource_type: ResourceType,
    parent_id: Optional[int] = None
) -> List[Any]:
    """
    Rows that may be offered in creation dropdowns

    Projects are offered only under an active client and jobs only under an
    active project of an active client. ``parent_id`` narrows projects to a
    client and jobs to a project.
    """
    resource_type = ResourceType(resource_type)

    if resource_type == ResourceType.PROJECT:
        query = db.query(Project).join(Client, Project.client_id == Client.id).filter(
            Project.active.is_(True),
            Client.active.is_(True),
        )
        if parent_id is not None:
            query = query.filter(Project.client_id == parent_id)
        return query.order_by(Project.name).all()

    if resource_type == ResourceType.JOB:
        query = (
            db.query(Job)
            .join(Project, Job.project_id == Project.id)
            .join(Client, Project.client_id == Client.id)
            .filter(Job.active.is_(True), Project.active.is_(True), Client.active.is_(True))
        )
        if parent_id is not None:
            query = query.filter(Job.project_id == parent_id)
        return query.order_by(Job.job_no, Job.name).all()

    simple = {
        ResourceType.CLIENT: Client,
        ResourceType.SERVICE: Service,
        ResourceType.TASK: Task,
        ResourceType.DEPARTMENT: Department,
    }
    model = simple.get(resource_type)
    if model is None:
        raise ValueError(f"{resource_type.value} has no selection list")
    return db.query(model).filter(model.active.is_(True)).order_by(model.name).all()


def ensure_selectable(db: Session, resource_type: ResourceType, record_id: int) -> None:
    """
    Reject a new reference to a row that could not have been selected

    Raises:
        ConstraintViolation: If the row is missing, inactive, or (for jobs)
            sits under an inactive project or client
    """
    resource_type = ResourceType(resource_type)
    model = {
        ResourceType.JOB: Job,
        ResourceType.SERVICE: Service,
        ResourceType.TASK: Task,
        ResourceType.DEPARTMENT: Department,
    }[resource_type]
    row = db.get(model, record_id)
    label = SELECTION_LABELS[resource_type]

    if row is None:
        raise ConstraintViolation(f"{label} {record_id} does not exist")

    chain = [row]
    if resource_type == ResourceType.JOB:
        chain += [row.project, row.project.client if row.project else None]

    if not all(is_selectable(item) for item in chain):
        logger.info("Rejected selection of inactive %s id=%s", resource_type.value, record_id)
        raise ConstraintViolation(f"{label} is inactive and cannot be selected")
