"""
Shared test helpers: direct row inserts and auth headers
"""
from datetime import date

from app.core.security import create_access_token, hash_password
from app.models import Role, TimeEntry, User

TEST_PASSWORD = "password123"
# bcrypt is slow on purpose; hash the shared test password once
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def make_user(db, email, role=Role.STAFF, department=None, is_active=True):
    """Insert a user directly, bypassing the audited write path"""
    user = User(
        email=email,
        display_name=email.split("@")[0].title(),
        role=role.value,
        department_id=department.id if department is not None else None,
        password_hash=TEST_PASSWORD_HASH,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_entry(db, user, job, service, department=None, task=None, minutes=60,
               entry_date=None, deleted_at=None):
    """Insert a time entry directly, bypassing the audited write path"""
    entry = TimeEntry(
        user_id=user.id,
        department_id=(department or user.department).id,
        job_id=job.id,
        service_id=service.id,
        task_id=task.id if task is not None else None,
        duration_minutes=minutes,
        entry_date=entry_date or date(2026, 3, 2),
        deleted_at=deleted_at,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def auth_headers(user):
    """Bearer headers for ``user`` without going through /auth/login"""
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}
