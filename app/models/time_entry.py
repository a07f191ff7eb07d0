"""
Time entry model

Entries are soft-deleted: ``deleted_at`` is set instead of removing the row.
"""
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="RESTRICT"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    entry_date = Column(Date, nullable=False, index=True)
    notes = Column(String, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='ck_time_entry_duration_positive'),
    )

    # Many-to-one only: no backrefs, so deleting a referenced parent hits the FK
    user = relationship("User")
    department = relationship("Department")
    job = relationship("Job")
    service = relationship("Service")
    task = relationship("Task")
