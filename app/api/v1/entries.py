"""
Time entry endpoints

Users log and edit their own time. Deleting an entry soft-deletes it.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_scope
from app.models.user import User
from app.schemas.time_entry import (
    TimeEntryCreate,
    TimeEntryUpdate,
    TimeEntryOut,
    TimeEntryDetailOut,
)
from app.services.department_scope import DepartmentScope
from app.services.mutation_service import apply_mutation
from app.services.time_entry_service import get_entry_details, list_user_entries
from app.utils.enums import AccessAction, ResourceType

router = APIRouter()


@router.get("/mine", response_model=List[TimeEntryOut])
async def list_my_entries(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the caller's own entries, newest first"""
    return list_user_entries(db, current_user, start_date=start_date, end_date=end_date)


@router.post("", response_model=TimeEntryOut, status_code=201)
async def create_entry_endpoint(
    entry_data: TimeEntryCreate,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """
    Log time

    The job, service and task must be selectable (active, under active
    parents). Owner and department default to the caller.
    """
    payload = entry_data.model_dump(exclude_none=True)
    result = apply_mutation(db, current_user, AccessAction.INSERT, ResourceType.TIME_ENTRY, payload, scope)
    return result.resource


@router.get("/{entry_id}", response_model=TimeEntryDetailOut)
async def get_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Get an entry with job, project, client, service and task names"""
    return get_entry_details(db, current_user, entry_id, scope)


@router.patch("/{entry_id}", response_model=TimeEntryOut)
async def update_entry_endpoint(
    entry_id: int,
    entry_data: TimeEntryUpdate,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Edit an entry (owner, or super admin)"""
    payload = entry_data.model_dump(exclude_unset=True)
    payload["id"] = entry_id
    result = apply_mutation(db, current_user, AccessAction.UPDATE, ResourceType.TIME_ENTRY, payload, scope)
    return result.resource


@router.delete("/{entry_id}", status_code=204)
async def delete_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Soft-delete an entry (owner, or super admin)"""
    apply_mutation(db, current_user, AccessAction.DELETE, ResourceType.TIME_ENTRY, {"id": entry_id}, scope)
