"""
Audit log schemas
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, field_serializer, ConfigDict

from app.models.audit_log import AuditAction
from app.utils.datetime_utils import iso_8601_utc


class AuditLogOut(BaseModel):
    """One audit record"""
    id: int
    table_name: str
    record_id: int
    action: AuditAction
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    actor_id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_8601_utc(dt)
