"""
User model (the actor of every access decision)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import enum
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class Role(str, enum.Enum):
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    __tablename__ = "users"
    __audit_exclude__ = ("password_hash",)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=Role.STAFF.value)
    # Home department; department scope for managers is this plus explicit assignments
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    # Relationships
    department = relationship("Department")
    managed_departments = relationship(
        "ManagerDepartment",
        back_populates="manager",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
