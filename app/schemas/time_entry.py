"""
Time entry schemas
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict

from app.utils.datetime_utils import iso_8601_utc


class TimeEntryCreate(BaseModel):
    """Schema for logging time"""
    job_id: int = Field(..., description="Job ID")
    service_id: int = Field(..., description="Service ID")
    task_id: Optional[int] = Field(None, description="Task ID")
    duration_minutes: int = Field(..., gt=0, description="Duration in minutes")
    entry_date: date = Field(..., description="Work date")
    notes: Optional[str] = Field(None, description="Free-text notes")
    user_id: Optional[int] = Field(None, description="Owner (defaults to the caller)")
    department_id: Optional[int] = Field(None, description="Department (defaults to the owner's home department)")


class TimeEntryUpdate(BaseModel):
    """Schema for editing a time entry; omitted fields are left unchanged"""
    job_id: Optional[int] = None
    service_id: Optional[int] = None
    task_id: Optional[int] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    entry_date: Optional[date] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None
    department_id: Optional[int] = None


class TimeEntryOut(BaseModel):
    """Schema for time entry output"""
    id: int
    user_id: int
    department_id: int
    job_id: int
    service_id: int
    task_id: Optional[int] = None
    duration_minutes: int
    entry_date: date
    notes: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("deleted_at", "created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_8601_utc(dt)


class NamedRef(BaseModel):
    id: int
    name: str


class JobRef(NamedRef):
    job_no: Optional[str] = None


class TimeEntryDetailOut(BaseModel):
    """An entry with the names of everything it references"""
    entry: TimeEntryOut
    job: JobRef
    project: NamedRef
    client: NamedRef
    service: NamedRef
    task: Optional[NamedRef] = None
