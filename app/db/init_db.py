"""
Database initialization
Seeds a home department and a super admin when none exists
"""
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.models.department import Department
from app.models.user import Role, User

logger = logging.getLogger(__name__)

DEFAULT_DEPARTMENT = "Administration"


def init_db(db: Session) -> None:
    """
    Create the initial super admin (and their department) if no super admin exists

    Seed rows are written directly; no actor exists yet to authorize or
    attribute them to.
    """
    existing = db.query(User).filter(User.role == Role.SUPER_ADMIN.value).first()
    if existing:
        logger.info("Super admin already exists, skipping initial bootstrap")
        return

    department = db.query(Department).filter(Department.name == DEFAULT_DEPARTMENT).first()
    if not department:
        department = Department(name=DEFAULT_DEPARTMENT, active=True)
        db.add(department)
        db.flush()
        logger.info("Created department: %s", DEFAULT_DEPARTMENT)

    admin = User(
        email=settings.INITIAL_ADMIN_EMAIL,
        display_name="System Administrator",
        role=Role.SUPER_ADMIN.value,
        department_id=department.id,
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        is_active=True,
    )
    db.add(admin)
    db.commit()
    logger.info("Initial super admin created: %s", settings.INITIAL_ADMIN_EMAIL)
