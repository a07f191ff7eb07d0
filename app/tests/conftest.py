"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; tests never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-timesheet-access-core")
os.environ.setdefault("APP_ENV", "local")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.tests.helpers import make_user

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Department,
    User,
    Role,
    ManagerDepartment,
    Client,
    Project,
    Job,
    Service,
    Task,
    TimeEntry,
    AuditLog,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()



@pytest.fixture
def dept_a(db):
    """Home department of the manager and staff_a"""
    dept = Department(name="Engineering", active=True)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def dept_b(db):
    """Department explicitly assigned to the manager"""
    dept = Department(name="Design", active=True)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def dept_c(db):
    """Department outside the manager's scope"""
    dept = Department(name="Finance", active=True)
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def super_admin(db, dept_a):
    return make_user(db, "root@example.com", Role.SUPER_ADMIN, dept_a)


@pytest.fixture
def admin(db, dept_a):
    return make_user(db, "admin@example.com", Role.ADMIN, dept_a)


@pytest.fixture
def manager(db, dept_a, dept_b):
    """Manager of dept_a (home) with dept_b assigned"""
    user = make_user(db, "manager@example.com", Role.MANAGER, dept_a)
    db.add(ManagerDepartment(manager_id=user.id, department_id=dept_b.id))
    db.commit()
    return user


@pytest.fixture
def staff_a(db, dept_a):
    return make_user(db, "alice@example.com", Role.STAFF, dept_a)


@pytest.fixture
def staff_b(db, dept_b):
    return make_user(db, "bob@example.com", Role.STAFF, dept_b)


@pytest.fixture
def staff_c(db, dept_c):
    return make_user(db, "carol@example.com", Role.STAFF, dept_c)


@pytest.fixture
def catalog(db):
    """An active client -> project -> job chain plus a service and a task"""
    client_row = Client(name="Acme", active=True)
    db.add(client_row)
    db.flush()
    project = Project(client_id=client_row.id, name="Website", active=True)
    db.add(project)
    db.flush()
    job = Job(project_id=project.id, name="Build", job_no="J-100", active=True)
    service = Service(name="Development", active=True)
    task = Task(name="Coding", active=True)
    db.add_all([job, service, task])
    db.commit()
    for row in (client_row, project, job, service, task):
        db.refresh(row)
    return {
        "client": client_row,
        "project": project,
        "job": job,
        "service": service,
        "task": task,
    }
