"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.security import Role
from app.dependencies import ClinicUser, DatabaseSession
from app.scheduling import AppointmentStatus
from app.scheduling.timeutils import clinic_today
from app.schemas.appointments import (
    AppointmentBatchCreate,
    AppointmentBatchResponse,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    DayAgendaResponse,
    NoShowSweepResponse,
    SlotCheckRequest,
    SlotDecisionResponse,
)
from app.services.appointment_service import AppointmentService
from app.services.clinic_settings_service import ClinicSettingsService

router = APIRouter()


@router.post(
    "/check",
    response_model=SlotDecisionResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether a slot can be booked",
)
async def check_slot(
    clinic_id: UUID,
    data: SlotCheckRequest,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> SlotDecisionResponse:
    """
    Run the slot resolver for a candidate booking without storing anything.

    The answer is a hint: the slot may still be taken before a booking is
    made, in which case creating the appointment returns 409.
    """
    current_user.check_practitioner(data.practitioner_id)

    service = AppointmentService(db)
    decision = await service.check_slot(clinic_id, data)
    return SlotDecisionResponse(
        accepted=decision.accepted,
        reason=decision.reason,
        message=decision.message,
        detail=decision.detail,
        conflict_appointment_id=decision.conflict.id if decision.conflict else None,
    )


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new appointment",
)
async def create_appointment(
    clinic_id: UUID,
    data: AppointmentCreate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment.

    Args:
        clinic_id: Clinic ID
        data: Appointment creation data
        current_user: Authenticated user
        db: Database session

    Returns:
        Created appointment

    Raises:
        SlotRejectedException: 409 with the reject ``reason`` when the slot is not legal
    """
    current_user.check_practitioner(data.practitioner_id)

    service = AppointmentService(db)
    return await service.create_appointment(clinic_id, data, created_by=current_user.id)


@router.post(
    "/batch",
    response_model=AppointmentBatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create several appointments",
)
async def create_appointments_batch(
    clinic_id: UUID,
    data: AppointmentBatchCreate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> AppointmentBatchResponse:
    """Book several slots at once; rejected items are listed with their reason."""
    current_user.check_role(Role.ADMIN, Role.RECEPTIONIST)

    service = AppointmentService(db)
    return await service.create_appointments_batch(clinic_id, data, created_by=current_user.id)


@router.post(
    "/no-show-sweep",
    response_model=NoShowSweepResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark past scheduled appointments as no-show",
)
async def run_no_show_sweep(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> NoShowSweepResponse:
    """Run the end-of-day no-show sweep for this clinic now."""
    current_user.check_role(Role.ADMIN)

    schedule = await ClinicSettingsService(db).get_schedule(clinic_id)
    updated = await AppointmentService(db).mark_past_no_shows(clinic_id=clinic_id)
    return NoShowSweepResponse(updated=updated, as_of=clinic_today(schedule.timezone))


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    practitioner_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> AppointmentListResponse:
    """
    List appointments of the clinic with filtering.

    Args:
        clinic_id: Clinic ID
        current_user: Authenticated user
        db: Database session
        status_filter: Filter by status
        practitioner_id: Filter by practitioner ID
        patient_id: Filter by patient ID
        from_date: First date included
        to_date: Last date included
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        practitioner_id=practitioner_id,
        patient_id=patient_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(clinic_id, filters)


@router.get(
    "/agenda",
    response_model=DayAgendaResponse,
    status_code=status.HTTP_200_OK,
    summary="Day agenda of a practitioner",
)
async def get_day_agenda(
    clinic_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    practitioner_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
) -> DayAgendaResponse:
    """
    Calendar grid of one practitioner for one day.

    Args:
        clinic_id: Clinic ID
        current_user: Authenticated user
        db: Database session
        practitioner_id: Practitioner ID
        day: Agenda date

    Returns:
        Every slot of the workday with its sub-slots and whether it is bookable
    """
    service = AppointmentService(db)
    return await service.get_day_agenda(clinic_id, practitioner_id, day)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    clinic_id: UUID,
    appointment_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    service = AppointmentService(db)
    return await service.get_appointment(clinic_id, appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    clinic_id: UUID,
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update appointment status (complete, cancel, or mark as no-show).

    Only ``scheduled`` appointments can change status.
    """
    service = AppointmentService(db)
    appointment = await service.get_appointment(clinic_id, appointment_id)
    current_user.check_practitioner(appointment.practitioner_id)

    return await service.update_appointment_status(clinic_id, appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete appointment",
)
async def delete_appointment(
    clinic_id: UUID,
    appointment_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
) -> None:
    """Permanently delete an appointment."""
    current_user.check_role(Role.ADMIN, Role.RECEPTIONIST)

    service = AppointmentService(db)
    await service.delete_appointment(clinic_id, appointment_id)


patient_router = APIRouter()


@patient_router.get(
    "/{patient_id}/appointments",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List a patient's appointments",
)
async def list_patient_appointments(
    clinic_id: UUID,
    patient_id: UUID,
    current_user: ClinicUser,
    db: DatabaseSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> AppointmentListResponse:
    """List every appointment of a patient in this clinic."""
    filters = AppointmentFilters(patient_id=patient_id, page=page, page_size=page_size)

    service = AppointmentService(db)
    return await service.list_appointments(clinic_id, filters)
