"""
Manager-Department service - business logic for manager-department assignments
"""
import logging
from typing import FrozenSet, Iterable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AccessError, ConstraintViolation, Forbidden, NotFound
from app.models.audit_log import AuditAction
from app.models.department import Department
from app.models.manager_department import ManagerDepartment
from app.models.user import Role, User
from app.services import audit_service
from app.services.department_scope import load_managed_department_ids
from app.utils.roles import as_role, is_admin_role

logger = logging.getLogger(__name__)

ASSIGNMENT_TABLE = ManagerDepartment.__tablename__


def get_managed_departments(db: Session, manager_id: int) -> FrozenSet[int]:
    """Department ids explicitly assigned to a manager"""
    return load_managed_department_ids(db, manager_id)


def list_manager_departments(db: Session, manager_id: int) -> List[ManagerDepartment]:
    """
    List all departments assigned to a manager

    Args:
        db: Database session
        manager_id: ID of the manager

    Returns:
        List of ManagerDepartment instances
    """
    return db.query(ManagerDepartment).filter(
        ManagerDepartment.manager_id == manager_id
    ).order_by(ManagerDepartment.department_id).all()


def assign_departments(
    db: Session,
    actor: User,
    manager_id: int,
    department_ids: Iterable[int]
) -> List[ManagerDepartment]:
    """
    Replace the set of departments assigned to a manager

    Re-submitting the current set is a no-op success and writes no audit row.

    Args:
        db: Database session
        actor: Admin performing the assignment
        manager_id: ID of the manager
        department_ids: Department IDs the manager should end up with

    Returns:
        The manager's assignments after the change

    Raises:
        Forbidden: If the actor is not an active admin/super_admin
        NotFound: If the manager does not exist
        ConstraintViolation: If the user is not a manager, or a newly added
            department is missing or inactive
    """
    if not actor.is_active or not is_admin_role(actor.role):
        raise Forbidden()

    manager = db.get(User, manager_id)
    if not manager:
        raise NotFound(f"Manager with id {manager_id} not found")

    if as_role(manager.role) != Role.MANAGER:
        raise ConstraintViolation(
            f"User with id {manager_id} is not a manager. Only managers can be assigned departments."
        )

    wanted = frozenset(department_ids)
    current = load_managed_department_ids(db, manager_id)
    if wanted == current:
        return list_manager_departments(db, manager_id)

    added = wanted - current
    removed = current - wanted

    # Validate newly added departments exist and are active
    departments = db.query(Department).filter(Department.id.in_(added)).all() if added else []
    missing_ids = added - {d.id for d in departments}
    if missing_ids:
        raise ConstraintViolation(f"Departments not found: {sorted(missing_ids)}")

    inactive_ids = [d.id for d in departments if not d.active]
    if inactive_ids:
        raise ConstraintViolation(f"Cannot assign inactive departments: {sorted(inactive_ids)}")

    try:
        if removed:
            db.query(ManagerDepartment).filter(
                ManagerDepartment.manager_id == manager_id,
                ManagerDepartment.department_id.in_(removed),
            ).delete(synchronize_session=False)
        for dept_id in sorted(added):
            db.add(ManagerDepartment(manager_id=manager_id, department_id=dept_id))
        db.flush()

        audit_service.record_mutation(
            db,
            ASSIGNMENT_TABLE,
            manager_id,
            AuditAction.UPDATE,
            {"manager_id": manager_id, "department_ids": sorted(current)},
            {"manager_id": manager_id, "department_ids": sorted(wanted)},
            actor.id,
            user_id=manager_id,
        )
        db.commit()
    except AccessError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise ConstraintViolation("Department assignment conflicts with existing data") from exc

    db.expire(manager, ["managed_departments"])
    logger.info(
        "Manager id=%s departments set to %s by actor=%s", manager_id, sorted(wanted), actor.id
    )
    return list_manager_departments(db, manager_id)


def remove_department_from_manager(
    db: Session,
    actor: User,
    manager_id: int,
    department_id: int
) -> None:
    """
    Remove a department assignment from a manager

    Raises:
        NotFound: If the department is not assigned to the manager
    """
    if not actor.is_active or not is_admin_role(actor.role):
        raise Forbidden()

    current = load_managed_department_ids(db, manager_id)
    if department_id not in current:
        raise NotFound(f"Department {department_id} is not assigned to manager {manager_id}")

    assign_departments(db, actor, manager_id, current - {department_id})
