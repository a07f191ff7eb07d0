"""
Access check endpoint: preview an authorization decision without acting
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_scope
from app.models import RESOURCE_MODELS
from app.models.user import User
from app.schemas.access import AccessCheckRequest, AccessCheckOut
from app.services.access_service import evaluate
from app.services.department_scope import DepartmentScope
from app.utils.enums import DenyReason

router = APIRouter()


@router.post("/check", response_model=AccessCheckOut)
async def check_access_endpoint(
    request: AccessCheckRequest,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Would the caller be allowed to perform ``action`` on this row?"""
    resource = None
    if request.resource_id is not None:
        resource = db.get(RESOURCE_MODELS[request.resource_type], request.resource_id)
        if resource is None:
            return AccessCheckOut(allowed=False, reason=DenyReason.NOT_FOUND)
    decision = evaluate(current_user, request.action, request.resource_type, resource, scope=scope)
    return AccessCheckOut(allowed=decision.allowed, reason=decision.reason)
