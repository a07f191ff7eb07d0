"""
Master data endpoints: clients, projects, jobs, services, tasks

Every master data table exposes the same seven operations, so the routers are
built from one factory. Writes are admin-only; reads hide inactive rows from
non-admins; ``/options`` lists only what may be selected for a new entry;
``/{id}/usage`` tells admins what still references a row.
"""
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, get_scope
from app.models.user import User
from app.schemas.master_data import (
    NamedCreate,
    NamedUpdate,
    ProjectCreate,
    ProjectUpdate,
    JobCreate,
    JobUpdate,
    MasterDataOut,
    OptionOut,
    UsageOut,
)
from app.services.access_service import get_visible, list_visible
from app.services.department_scope import DepartmentScope
from app.services.master_data_service import check_usage
from app.services.mutation_service import apply_mutation
from app.services.visibility_service import list_selectable
from app.utils.enums import AccessAction, ResourceType


def build_router(
    resource_type: ResourceType,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    out_schema: Type[BaseModel] = MasterDataOut,
    option_schema: Type[BaseModel] = OptionOut,
) -> APIRouter:
    """Build the list/options/get/usage/create/update/delete routes for one table"""
    router = APIRouter()
    label = resource_type.value

    @router.get("", response_model=List[out_schema], name=f"list_{label}")
    async def list_rows(
        active_only: Optional[bool] = Query(None),
        parent_id: Optional[int] = Query(None, description="Client ID for projects, project ID for jobs"),
        db: Session = Depends(get_db),
        scope: DepartmentScope = Depends(get_scope),
        current_user: User = Depends(get_current_user)
    ):
        return list_visible(
            db, current_user, resource_type, scope=scope, active_only=active_only, parent_id=parent_id
        )

    @router.get("/options", response_model=List[option_schema], name=f"{label}_options")
    async def list_options(
        parent_id: Optional[int] = Query(None, description="Client ID for projects, project ID for jobs"),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return list_selectable(db, resource_type, parent_id=parent_id)

    @router.get("/{record_id}", response_model=out_schema, name=f"get_{label}")
    async def get_row(
        record_id: int,
        db: Session = Depends(get_db),
        scope: DepartmentScope = Depends(get_scope),
        current_user: User = Depends(get_current_user)
    ):
        return get_visible(db, current_user, resource_type, record_id, scope)

    @router.get("/{record_id}/usage", response_model=UsageOut, name=f"{label}_usage")
    async def get_usage(
        record_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        """Admins check whether a row is still referenced before deactivating it"""
        return check_usage(db, current_user, resource_type, record_id)

    @router.post("", response_model=out_schema, status_code=201, name=f"create_{label}")
    async def create_row(
        data: create_schema,
        db: Session = Depends(get_db),
        scope: DepartmentScope = Depends(get_scope),
        current_user: User = Depends(get_current_user)
    ):
        result = apply_mutation(
            db, current_user, AccessAction.INSERT, resource_type, data.model_dump(), scope
        )
        return result.resource

    @router.patch("/{record_id}", response_model=out_schema, name=f"update_{label}")
    async def update_row(
        record_id: int,
        data: update_schema,
        db: Session = Depends(get_db),
        scope: DepartmentScope = Depends(get_scope),
        current_user: User = Depends(get_current_user)
    ):
        payload = data.model_dump(exclude_unset=True)
        payload["id"] = record_id
        result = apply_mutation(db, current_user, AccessAction.UPDATE, resource_type, payload, scope)
        return result.resource

    @router.delete("/{record_id}", status_code=204, name=f"delete_{label}")
    async def delete_row(
        record_id: int,
        db: Session = Depends(get_db),
        scope: DepartmentScope = Depends(get_scope),
        current_user: User = Depends(get_current_user)
    ):
        apply_mutation(db, current_user, AccessAction.DELETE, resource_type, {"id": record_id}, scope)

    return router


clients_router = build_router(ResourceType.CLIENT, NamedCreate, NamedUpdate)
projects_router = build_router(ResourceType.PROJECT, ProjectCreate, ProjectUpdate)
jobs_router = build_router(ResourceType.JOB, JobCreate, JobUpdate)
services_router = build_router(ResourceType.SERVICE, NamedCreate, NamedUpdate)
tasks_router = build_router(ResourceType.TASK, NamedCreate, NamedUpdate)

router = APIRouter()
router.include_router(clients_router, prefix="/clients")
router.include_router(projects_router, prefix="/projects")
router.include_router(jobs_router, prefix="/jobs")
router.include_router(services_router, prefix="/services")
router.include_router(tasks_router, prefix="/tasks")
