"""
Department model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    # Deactivation only hides the department from new selections
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)
