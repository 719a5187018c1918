"""Practitioner and availability endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.security import Role
from app.dependencies import ClinicUser, DatabaseSession
from app.schemas.availability import AvailabilityReplace, AvailabilityWindowResponse
from app.schemas.practitioners import PractitionerCreate, PractitionerResponse
from app.services.practitioner_service import PractitionerService

router = APIRouter()


@router.post(
    "/",
    response_model=PractitionerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create practitioner",
)
async def create_practitioner(
    clinic_id: UUID,
    data: PractitionerCreate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> PractitionerResponse:
    """Add a practitioner to the clinic."""
    current_user.check_role(Role.ADMIN)
    return await PractitionerService(db).create_practitioner(clinic_id, data)


@router.get(
    "/",
    response_model=list[PractitionerResponse],
    status_code=status.HTTP_200_OK,
    summary="List practitioners",
)
async def list_practitioners(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    include_inactive: bool = Query(False),
) -> list[PractitionerResponse]:
    """List the clinic's practitioners."""
    return await PractitionerService(db).list_practitioners(clinic_id, include_inactive)


@router.get(
    "/{practitioner_id}/availability",
    response_model=list[AvailabilityWindowResponse],
    status_code=status.HTTP_200_OK,
    summary="Get weekly availability",
)
async def get_availability(
    clinic_id: UUID,
    practitioner_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> list[AvailabilityWindowResponse]:
    """
    Get a practitioner's weekly availability windows.

    An empty list means no restriction is configured: the practitioner can be
    booked at any time within the clinic's workday.
    """
    return await PractitionerService(db).list_windows(clinic_id, practitioner_id)


@router.put(
    "/{practitioner_id}/availability",
    response_model=list[AvailabilityWindowResponse],
    status_code=status.HTTP_200_OK,
    summary="Replace weekly availability",
)
async def replace_availability(
    clinic_id: UUID,
    practitioner_id: UUID,
    data: AvailabilityReplace,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> list[AvailabilityWindowResponse]:
    """Replace the whole weekly availability set of a practitioner."""
    current_user.check_role(Role.ADMIN)
    return await PractitionerService(db).replace_windows(clinic_id, practitioner_id, data)
