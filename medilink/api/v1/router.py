"""API v1 router configuration."""

from fastapi import APIRouter

from medilink.api.v1.endpoints import (
    appointments,
    calendar,
    consultations,
    health,
    patients,
    portal,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(consultations.router, prefix="/consultations", tags=["Consultations"])
api_router.include_router(patients.router, prefix="/patients", tags=["Patients"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["Calendar"])
api_router.include_router(portal.router, prefix="/portal", tags=["Patient Portal"])
