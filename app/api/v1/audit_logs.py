"""
Audit log endpoints (read-only)
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.user import User
from app.schemas.audit_log import AuditLogOut
from app.services.audit_service import list_audit_logs

router = APIRouter()


@router.get("", response_model=List[AuditLogOut])
async def list_audit_logs_endpoint(
    table_name: Optional[str] = Query(None),
    record_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None, description="Owner of the audited rows"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List audit records, newest first

    Only admins see audit records; everyone else gets an empty list.
    """
    return list_audit_logs(
        db, current_user,
        table_name=table_name, record_id=record_id, user_id=user_id,
        start=start, end=end, limit=limit,
    )
