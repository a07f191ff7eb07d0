"""
User management endpoints

Admins manage accounts within their assignment ceiling; every user may read
and edit their own display name.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_scope
from app.core.security import hash_password, validate_password
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate, UserOut, UserMutationOut
from app.services.access_service import get_visible, list_visible
from app.services.department_scope import DepartmentScope
from app.services.mutation_service import apply_mutation
from app.utils.enums import AccessAction, ResourceType

router = APIRouter()


@router.get("", response_model=List[UserOut])
async def list_users_endpoint(
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """List users (admins see everyone, others only themselves)"""
    return list_visible(db, current_user, ResourceType.USER, scope=scope)


@router.post("", response_model=UserMutationOut, status_code=201)
async def create_user_endpoint(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Create a user; the requested role must be assignable by the caller"""
    payload = user_data.model_dump(exclude={"password"})
    if user_data.password:
        try:
            payload["password_hash"] = hash_password(validate_password(user_data.password))
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    result = apply_mutation(db, current_user, AccessAction.INSERT, ResourceType.USER, payload, scope)
    return UserMutationOut(
        user=UserOut.model_validate(result.resource),
        changed=result.changed,
        became_manager=result.became_manager,
        audit_entry_id=result.audit_entry_id,
    )


@router.get("/{user_id}", response_model=UserOut)
async def get_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Get a user by ID"""
    return get_visible(db, current_user, ResourceType.USER, user_id, scope)


@router.patch("/{user_id}", response_model=UserMutationOut)
async def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """
    Update a user

    Nobody may change their own role or deactivate themselves. A response
    with ``became_manager`` set means the user needs department assignments.
    """
    payload = user_data.model_dump(exclude_unset=True)
    payload["id"] = user_id
    result = apply_mutation(db, current_user, AccessAction.UPDATE, ResourceType.USER, payload, scope)
    return UserMutationOut(
        user=UserOut.model_validate(result.resource),
        changed=result.changed,
        became_manager=result.became_manager,
        audit_entry_id=result.audit_entry_id,
    )


@router.delete("/{user_id}", status_code=204)
async def delete_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    scope: DepartmentScope = Depends(get_scope),
    current_user: User = Depends(get_current_user)
):
    """Delete a user that owns no time entries (admin only)"""
    apply_mutation(db, current_user, AccessAction.DELETE, ResourceType.USER, {"id": user_id}, scope)
