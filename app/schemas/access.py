"""
Access check schemas
"""
from typing import Optional
from pydantic import BaseModel, Field

from app.utils.enums import AccessAction, DenyReason, ResourceType


class AccessCheckRequest(BaseModel):
    """Ask whether the caller may perform ``action`` on a row (or on the table)"""
    action: AccessAction
    resource_type: ResourceType
    resource_id: Optional[int] = Field(None, description="Row ID; omit to ask about the action in general")


class AccessCheckOut(BaseModel):
    allowed: bool
    reason: Optional[DenyReason] = None
