"""
Manager-Department assignment endpoints (admin-only writes)
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.core.exceptions import NotFound
from app.models.user import User
from app.schemas.manager_department import (
    AssignDepartmentsRequest,
    ManagerDepartmentOut
)
from app.services.manager_department_service import (
    assign_departments,
    list_manager_departments,
    remove_department_from_manager
)
from app.utils.roles import is_admin_role

router = APIRouter()


@router.put("/{manager_id}/departments", response_model=List[ManagerDepartmentOut])
async def assign_departments_endpoint(
    manager_id: int,
    request: AssignDepartmentsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Replace the set of departments assigned to a manager (admin-only)"""
    assignments = assign_departments(db, current_user, manager_id, request.department_ids)
    return [
        ManagerDepartmentOut(manager_id=a.manager_id, department_id=a.department_id)
        for a in assignments
    ]


@router.get("/{manager_id}/departments", response_model=List[ManagerDepartmentOut])
async def list_manager_departments_endpoint(
    manager_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List departments assigned to a manager (admins, or the manager themself)"""
    if current_user.id != manager_id and not is_admin_role(current_user.role):
        raise NotFound()
    return [
        ManagerDepartmentOut(manager_id=a.manager_id, department_id=a.department_id)
        for a in list_manager_departments(db, manager_id)
    ]


@router.delete("/{manager_id}/departments/{department_id}", status_code=204)
async def remove_department_endpoint(
    manager_id: int,
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Remove one department assignment from a manager (admin-only)"""
    remove_department_from_manager(db, current_user, manager_id, department_id)
