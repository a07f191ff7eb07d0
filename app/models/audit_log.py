"""
Audit log model

Append-only. ``actor_id`` has no foreign key so entries outlive the users
they mention.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
import enum
from app.db.base import Base


class AuditAction(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(String, nullable=False)
    record_id = Column(Integer, nullable=False)
    action = Column(String, nullable=False)  # INSERT, UPDATE, DELETE
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    actor_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, index=True)  # owner of the audited row, if any
    # Set explicitly on write to avoid SQLite issues with server_default
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_audit_logs_table_record', 'table_name', 'record_id'),
        Index('ix_audit_logs_created_at', 'created_at'),
    )
