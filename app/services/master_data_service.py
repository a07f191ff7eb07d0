"""
Master data service - usage checks before deactivating or deleting a row
"""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.exceptions import Forbidden, NotFound
from app.models import RESOURCE_MODELS
from app.models.master_data import Job, Project
from app.models.time_entry import TimeEntry
from app.models.user import User
from app.utils.enums import ResourceType, MASTER_DATA_TYPES
from app.utils.roles import is_admin_role


@dataclass
class ItemUsage:
    used: bool
    count: int


def _entry_usage_query(db: Session, resource_type: ResourceType, record_id: int):
    query = db.query(TimeEntry)
    if resource_type == ResourceType.SERVICE:
        return query.filter(TimeEntry.service_id == record_id)
    if resource_type == ResourceType.TASK:
        return query.filter(TimeEntry.task_id == record_id)
    if resource_type == ResourceType.JOB:
        return query.filter(TimeEntry.job_id == record_id)

    query = query.join(Job, TimeEntry.job_id == Job.id)
    if resource_type == ResourceType.PROJECT:
        return query.filter(Job.project_id == record_id)
    # Client: entries on any job of any of its projects
    return query.join(Project, Job.project_id == Project.id).filter(Project.client_id == record_id)


def check_usage(db: Session, actor, resource_type: ResourceType, record_id: int) -> ItemUsage:
    """
    Report how many rows still depend on a master data row

    Clients, projects, jobs, services and tasks count the time entries that
    reference them, soft-deleted ones included, following job -> project ->
    client for the parents. Departments count their active users.

    Args:
        db: Database session
        actor: Admin asking before a deactivation or delete
        resource_type: Master data table
        record_id: Row to check

    Returns:
        ItemUsage with ``used`` and ``count``

    Raises:
        Forbidden: If the actor is not an active admin/super_admin
        NotFound: If the row does not exist
    """
    resource_type = ResourceType(resource_type)
    if resource_type not in MASTER_DATA_TYPES:
        raise ValueError(f"{resource_type.value} has no usage check")

    if not actor.is_active or not is_admin_role(actor.role):
        raise Forbidden()

    if db.get(RESOURCE_MODELS[resource_type], record_id) is None:
        raise NotFound()

    if resource_type == ResourceType.DEPARTMENT:
        count = db.query(User).filter(
            User.department_id == record_id,
            User.is_active.is_(True),
        ).count()
    else:
        count = _entry_usage_query(db, resource_type, record_id).count()

    return ItemUsage(used=count > 0, count=count)
