"""
Time entry read service - personal lists, team views and historical details
"""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import Forbidden
from app.models.master_data import Job, Project
from app.models.time_entry import TimeEntry
from app.models.user import Role
from app.services.access_service import filter_visible, get_visible
from app.services.department_scope import DepartmentScope
from app.utils.enums import ResourceType
from app.utils.roles import as_role


def _date_window(query, start_date: Optional[date], end_date: Optional[date]):
    if start_date is not None:
        query = query.filter(TimeEntry.entry_date >= start_date)
    if end_date is not None:
        query = query.filter(TimeEntry.entry_date <= end_date)
    return query


def list_user_entries(
    db: Session,
    actor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[TimeEntry]:
    """The actor's own live entries, newest first"""
    query = db.query(TimeEntry).filter(
        TimeEntry.user_id == actor.id,
        TimeEntry.deleted_at.is_(None),
    )
    query = _date_window(query, start_date, end_date)
    return query.order_by(TimeEntry.entry_date.desc(), TimeEntry.id.desc()).all()


def list_team_entries(
    db: Session,
    actor,
    scope: DepartmentScope,
    department_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[TimeEntry]:
    """
    Department-level view of live entries

    Managers see their home department plus assigned departments; admins see
    everything. Staff have no department-level view.

    Raises:
        Forbidden: For staff, or for a department outside a manager's scope
    """
    if as_role(actor.role) == Role.STAFF or not actor.is_active:
        raise Forbidden()

    query = db.query(TimeEntry).filter(TimeEntry.deleted_at.is_(None))

    if department_id is not None:
        if not scope.can_access_department(actor, department_id):
            raise Forbidden()
        query = query.filter(TimeEntry.department_id == department_id)
    else:
        visible = scope.visible_departments(actor)
        if visible is not None:
            if not visible:
                return []
            query = query.filter(TimeEntry.department_id.in_(visible))

    query = _date_window(query, start_date, end_date)
    rows = query.order_by(TimeEntry.entry_date.desc(), TimeEntry.id.desc()).all()
    return filter_visible(actor, ResourceType.TIME_ENTRY, rows, scope)


def get_entry_details(db: Session, actor, entry_id: int, scope: DepartmentScope) -> Dict[str, Any]:
    """
    One entry with its job, project, client, service and task names

    Names resolve through joins whatever the referenced rows' active flags
    are, so historical entries keep displaying correctly after master data is
    deactivated.

    Raises:
        NotFound: If the entry is missing or not readable by the actor
    """
    entry = get_visible(db, actor, ResourceType.TIME_ENTRY, entry_id, scope)
    entry = (
        db.query(TimeEntry)
        .options(
            joinedload(TimeEntry.job).joinedload(Job.project).joinedload(Project.client),
            joinedload(TimeEntry.service),
            joinedload(TimeEntry.task),
        )
        .filter(TimeEntry.id == entry.id)
        .one()
    )
    job = entry.job
    return {
        "entry": entry,
        "job": {"id": job.id, "name": job.name, "job_no": job.job_no},
        "project": {"id": job.project.id, "name": job.project.name},
        "client": {"id": job.project.client.id, "name": job.project.client.name},
        "service": {"id": entry.service.id, "name": entry.service.name},
        "task": {"id": entry.task.id, "name": entry.task.name} if entry.task else None,
    }
