"""
User schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict

from app.models.user import Role
from app.utils.datetime_utils import iso_8601_utc


class UserCreate(BaseModel):
    """Schema for creating a user"""
    email: str = Field(..., min_length=3, description="Login email (unique)")
    display_name: Optional[str] = Field(None, description="Display name")
    role: Role = Field(default=Role.STAFF, description="User role")
    department_id: Optional[int] = Field(None, description="Home department ID")
    password: Optional[str] = Field(None, min_length=6, max_length=72, description="Initial password")
    is_active: bool = Field(default=True, description="Active status")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdate(BaseModel):
    """Schema for updating a user; omitted fields are left unchanged"""
    email: Optional[str] = Field(None, min_length=3, description="Login email")
    display_name: Optional[str] = Field(None, description="Display name")
    role: Optional[Role] = Field(None, description="User role")
    department_id: Optional[int] = Field(None, description="Home department ID")
    is_active: Optional[bool] = Field(None, description="Active status")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else None


class UserOut(BaseModel):
    """Schema for user output"""
    id: int
    email: str
    display_name: Optional[str] = None
    role: Role
    department_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_8601_utc(dt)


class UserMutationOut(BaseModel):
    """User write result; ``became_manager`` prompts the caller to assign departments"""
    user: UserOut
    changed: bool = True
    became_manager: bool = False
    audit_entry_id: Optional[int] = None
