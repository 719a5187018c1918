"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    appointments,
    clinic_settings,
    health,
    practitioners,
    schedule_exceptions,
)

api_router = APIRouter()

CLINIC_PREFIX = "/clinics/{clinic_id}"

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(clinic_settings.router, prefix=CLINIC_PREFIX, tags=["Clinic Settings"])
api_router.include_router(
    practitioners.router, prefix=f"{CLINIC_PREFIX}/practitioners", tags=["Practitioners"]
)
api_router.include_router(
    schedule_exceptions.router, prefix=CLINIC_PREFIX, tags=["Schedule Exceptions"]
)
api_router.include_router(
    appointments.router, prefix=f"{CLINIC_PREFIX}/appointments", tags=["Appointments"]
)
api_router.include_router(
    appointments.patient_router, prefix=f"{CLINIC_PREFIX}/patients", tags=["Appointments"]
)
