"""
Master data schemas: clients, projects, jobs, services, tasks
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict

from app.utils.datetime_utils import iso_8601_utc


class NamedCreate(BaseModel):
    """Schema for creating a client, service or task"""
    name: str = Field(..., min_length=1, description="Display name")
    active: bool = Field(default=True, description="Active status")


class NamedUpdate(BaseModel):
    """Schema for updating a client, service or task"""
    name: Optional[str] = Field(None, min_length=1, description="Display name")
    active: Optional[bool] = Field(None, description="Active status")


class ProjectCreate(NamedCreate):
    client_id: int = Field(..., description="Owning client ID")


class ProjectUpdate(NamedUpdate):
    client_id: Optional[int] = Field(None, description="Owning client ID")


class JobCreate(NamedCreate):
    project_id: int = Field(..., description="Owning project ID")
    job_no: Optional[str] = Field(None, description="Job number")


class JobUpdate(NamedUpdate):
    project_id: Optional[int] = Field(None, description="Owning project ID")
    job_no: Optional[str] = Field(None, description="Job number")


class MasterDataOut(BaseModel):
    """Common output shape for all master data rows"""
    id: int
    name: str
    active: bool
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    job_no: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_8601_utc(dt)


class OptionOut(BaseModel):
    """Lightweight row for selection dropdowns"""
    id: int
    name: str
    job_no: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UsageOut(BaseModel):
    """How many rows still depend on a master data row"""
    used: bool
    count: int

    model_config = ConfigDict(from_attributes=True)
