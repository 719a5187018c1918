"""Clinic settings endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.core.security import Role
from app.dependencies import ClinicUser, DatabaseSession
from app.schemas.clinic_settings import ClinicSettingsResponse, ClinicSettingsUpdate
from app.services.clinic_settings_service import ClinicSettingsService

router = APIRouter()


@router.get(
    "/settings",
    response_model=ClinicSettingsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get clinic scheduling settings",
)
async def get_clinic_settings(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> ClinicSettingsResponse:
    """Get the clinic's scheduling settings, or the defaults when none are stored."""
    return await ClinicSettingsService(db).get_settings(clinic_id)


@router.put(
    "/settings",
    response_model=ClinicSettingsResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace clinic scheduling settings",
)
async def update_clinic_settings(
    clinic_id: UUID,
    data: ClinicSettingsUpdate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> ClinicSettingsResponse:
    """
    Replace the clinic's scheduling settings.

    - **workday_start / workday_end**: earliest and latest start time for bookings
    - **min_slot_minutes**: slot length in minutes
    - **sub_slots_per_block**: parallel bookings per practitioner and slot
    - **exclusive_treatments**: treatments that need the whole slot
    - **auto_mark_no_show**: include the clinic in the end-of-day sweep
    """
    current_user.check_role(Role.ADMIN)
    return await ClinicSettingsService(db).upsert_settings(clinic_id, data)
