"""
Department management endpoints

Departments share the master data rules: admins write, inactive rows are
hidden from everyone else.
"""
from app.api.v1.master_data import build_router
from app.schemas.department import DepartmentCreate, DepartmentUpdate, DepartmentOut
from app.schemas.master_data import OptionOut
from app.utils.enums import ResourceType

router = build_router(
    ResourceType.DEPARTMENT,
    DepartmentCreate,
    DepartmentUpdate,
    out_schema=DepartmentOut,
    option_schema=OptionOut,
)
