"""
Team view endpoints for managers and admins
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_scope
from app.models.user import User
from app.schemas.time_entry import TimeEntryOut
from app.services.department_scope import DepartmentScope
from app.services.time_entry_service import list_team_entries

router = APIRouter()


@router.get("/entries", response_model=List[TimeEntryOut])
async def list_team_entries_endpoint(
    department_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """
    Entries from the departments the caller oversees

    Managers see their home department plus assigned departments.
    """
    return list_team_entries(
        db, current_user, scope,
        department_id=department_id, start_date=start_date, end_date=end_date,
    )
