"""
Health check endpoint
"""
from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns service status.
    """
    return {
        "status": "ok",
        "service": "timesheet-access-core",
    }
