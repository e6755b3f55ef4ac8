"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    attendance_periods,
    attendance_records,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(attendance_periods.router, prefix="/attendance/periods", tags=["attendance-periods"])
api_router.include_router(attendance_records.router, prefix="/attendance/records", tags=["attendance-records"])
