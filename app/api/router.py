"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    auth,
    users,
    departments,
    managers,
    master_data,
    entries,
    team,
    audit_logs,
    access,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(managers.router, prefix="/managers", tags=["managers"])
api_router.include_router(master_data.router, prefix="/master-data", tags=["master-data"])
api_router.include_router(entries.router, prefix="/entries", tags=["time-entries"])
api_router.include_router(team.router, prefix="/team", tags=["team"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
api_router.include_router(access.router, prefix="/access", tags=["access"])
