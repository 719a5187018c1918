"""Schedule exception and holiday endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import BadRequestException
from app.core.security import Role
from app.dependencies import ClinicUser, DatabaseSession
from app.scheduling import ExceptionType
from app.schemas.schedule_exceptions import (
    HolidayCreate,
    HolidayResponse,
    ScheduleExceptionCreate,
    ScheduleExceptionResponse,
)
from app.services.schedule_exception_service import ScheduleExceptionService

router = APIRouter()


def _check_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise BadRequestException("from_date must not be after to_date")


@router.post(
    "/exceptions",
    response_model=ScheduleExceptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create schedule exception",
)
async def create_exception(
    clinic_id: UUID,
    data: ScheduleExceptionCreate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> ScheduleExceptionResponse:
    """
    Create a closure, practitioner block or extended hours for a date.

    Practitioners may only block their own agenda.
    """
    if current_user.role == Role.PRACTITIONER:
        if data.type != ExceptionType.PRACTITIONER_BLOCK:
            current_user.check_role(Role.ADMIN, Role.RECEPTIONIST)
        current_user.check_practitioner(data.practitioner_id)

    service = ScheduleExceptionService(db)
    return await service.create_exception(clinic_id, data, created_by=current_user.id)


@router.get(
    "/exceptions",
    response_model=list[ScheduleExceptionResponse],
    status_code=status.HTTP_200_OK,
    summary="List schedule exceptions",
)
async def list_exceptions(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    from_date: date = Query(...),
    to_date: date = Query(...),
    practitioner_id: UUID | None = Query(None),
) -> list[ScheduleExceptionResponse]:
    """List exceptions in a date range, optionally for one practitioner."""
    _check_range(from_date, to_date)

    service = ScheduleExceptionService(db)
    return await service.list_exceptions(clinic_id, from_date, to_date, practitioner_id)


@router.delete(
    "/exceptions/{exception_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete schedule exception",
)
async def delete_exception(
    clinic_id: UUID,
    exception_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> None:
    """Delete a schedule exception."""
    service = ScheduleExceptionService(db)
    if current_user.role == Role.PRACTITIONER:
        existing = await service.get_exception(clinic_id, exception_id)
        current_user.check_practitioner(existing.practitioner_id)

    await service.delete_exception(clinic_id, exception_id)


@router.post(
    "/holidays",
    response_model=HolidayResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create holiday",
)
async def create_holiday(
    clinic_id: UUID,
    data: HolidayCreate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> HolidayResponse:
    """Add a holiday; the clinic is closed for booking on that date."""
    current_user.check_role(Role.ADMIN)
    return await ScheduleExceptionService(db).create_holiday(clinic_id, data)


@router.get(
    "/holidays",
    response_model=list[HolidayResponse],
    status_code=status.HTTP_200_OK,
    summary="List holidays",
)
async def list_holidays(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    from_date: date = Query(...),
    to_date: date = Query(...),
) -> list[HolidayResponse]:
    """List holidays that apply to this clinic in a date range."""
    _check_range(from_date, to_date)
    return await ScheduleExceptionService(db).list_holidays(clinic_id, from_date, to_date)
