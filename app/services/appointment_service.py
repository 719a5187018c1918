"""Appointment service for business logic."""

from collections.abc import Sequence
from datetime import UTC, date, datetime, time
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    NotFoundException,
    SlotRejectedException,
    ValidationException,
)
from app.models.appointments import appointments
from app.scheduling import (
    AppointmentStatus,
    BookedAppointment,
    RejectReason,
    SchedulingSnapshot,
    SlotDecision,
    SlotRequest,
    resolve_batch,
    resolve_slot,
)
from app.scheduling.timeutils import clinic_today, format_time, generate_time_slots
from app.schemas.appointments import (
    AgendaSlot,
    AgendaSubSlot,
    AppointmentBatchCreate,
    AppointmentBatchResponse,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    BatchRejection,
    DayAgendaResponse,
    SlotBase,
    SlotCheckRequest,
)
from app.services.clinic_settings_service import ClinicSettingsService
from app.services.practitioner_service import PractitionerService
from app.services.schedule_exception_service import ScheduleExceptionService

logger = structlog.get_logger()

# Allowed status changes; anything else is rejected
STATUS_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

SLOT_INDEX_NAME = "uq_appointments_active_slot"

# Treatment used to probe agenda slots for regular bookings
REGULAR_TREATMENT_PROBE = "regular"


def _is_slot_violation(exc: IntegrityError) -> bool:
    """Whether an IntegrityError comes from the active-slot unique index."""
    message = str(exc.orig)
    return SLOT_INDEX_NAME in message or "UNIQUE constraint failed: appointments." in message


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.settings_service = ClinicSettingsService(db)
        self.practitioner_service = PractitionerService(db)
        self.exception_service = ScheduleExceptionService(db)

    async def build_snapshot(
        self,
        clinic_id: UUID,
        requests: Sequence[SlotRequest],
    ) -> SchedulingSnapshot:
        """
        Load the scheduling state the resolver needs for the given requests.

        Args:
            clinic_id: Clinic ID
            requests: Candidate bookings (all in this clinic)

        Returns:
            Snapshot with settings, windows, exceptions and active appointments
        """
        practitioner_ids = sorted({r.practitioner_id for r in requests})
        dates = sorted({r.date for r in requests})

        schedule = await self.settings_service.get_schedule(clinic_id)
        windows = await self.practitioner_service.load_windows(clinic_id, practitioner_ids)
        exceptions = await self.exception_service.load_for_dates(clinic_id, dates)
        names = await self.practitioner_service.get_names(clinic_id, practitioner_ids)

        stmt = select(appointments).where(
            appointments.c.clinic_id == clinic_id,
            appointments.c.practitioner_id.in_(practitioner_ids),
            appointments.c.date.in_(dates),
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        )
        result = await self.db.execute(stmt)
        booked = [BookedAppointment.model_validate(dict(row)) for row in result.mappings().all()]

        return SchedulingSnapshot(
            clinic=schedule,
            windows=windows,
            exceptions=exceptions,
            appointments=booked,
            practitioner_names=names,
        )

    async def _to_request(
        self,
        clinic_id: UUID,
        data: SlotBase,
        exclude_appointment_id: UUID | None = None,
    ) -> SlotRequest:
        """
        Validate the slot fields that are not scheduling decisions.

        Raises:
            NotFoundException: If the practitioner does not belong to the clinic
            ValidationException: If the practitioner is inactive or the sub-slot is out of range
        """
        practitioner = await self.practitioner_service.get_practitioner(
            clinic_id, data.practitioner_id
        )
        if not practitioner["is_active"]:
            raise ValidationException("Practitioner is not active")

        schedule = await self.settings_service.get_schedule(clinic_id)
        if data.sub_slot > schedule.sub_slots_per_block:
            raise ValidationException(
                f"sub_slot must be between 1 and {schedule.sub_slots_per_block}"
            )

        return SlotRequest(
            clinic_id=clinic_id,
            practitioner_id=data.practitioner_id,
            date=data.date,
            start_time=data.start_time,
            sub_slot=data.sub_slot,
            treatment_type=data.treatment_type,
            exclude_appointment_id=exclude_appointment_id,
        )

    async def check_slot(self, clinic_id: UUID, data: SlotCheckRequest) -> SlotDecision:
        """
        Evaluate a slot without booking it.

        Args:
            clinic_id: Clinic ID
            data: Slot to check

        Returns:
            Resolver decision
        """
        request = await self._to_request(clinic_id, data, data.exclude_appointment_id)
        snapshot = await self.build_snapshot(clinic_id, [request])
        return resolve_slot(request, snapshot)

    @staticmethod
    def _insert_values(clinic_id: UUID, data: AppointmentCreate, created_by: UUID | None) -> dict:
        return {
            "clinic_id": clinic_id,
            "practitioner_id": data.practitioner_id,
            "patient_id": data.patient_id,
            "date": data.date,
            "start_time": data.start_time.replace(second=0, microsecond=0),
            "sub_slot": data.sub_slot,
            "treatment_type": data.treatment_type,
            "mode": data.mode.value,
            "notes": data.notes,
            "status": AppointmentStatus.SCHEDULED.value,
            "created_by": created_by,
        }

    @staticmethod
    def _occupied(data: SlotBase) -> SlotRejectedException:
        return SlotRejectedException(
            RejectReason.SLOT_OCCUPIED.value,
            f"Sub-slot {data.sub_slot} at {data.date.isoformat()} "
            f"{format_time(data.start_time)} was just booked by someone else",
        )

    async def create_appointment(
        self,
        clinic_id: UUID,
        data: AppointmentCreate,
        created_by: UUID | None = None,
    ) -> AppointmentResponse:
        """
        Create a new appointment after the slot resolver accepts it.

        Args:
            clinic_id: Clinic ID
            data: Appointment creation data
            created_by: ID of the user creating the appointment

        Returns:
            Created appointment

        Raises:
            SlotRejectedException: If the resolver rejects the slot, or another
                booking took the sub-slot before this insert committed
        """
        request = await self._to_request(clinic_id, data)
        snapshot = await self.build_snapshot(clinic_id, [request])
        decision = resolve_slot(request, snapshot)

        if not decision.accepted:
            logger.info(
                "slot_rejected",
                clinic_id=str(clinic_id),
                practitioner_id=str(data.practitioner_id),
                date=data.date.isoformat(),
                start_time=format_time(data.start_time),
                sub_slot=data.sub_slot,
                reason=decision.reason.value,
            )
            raise SlotRejectedException(decision.reason.value, decision.message, decision.detail)

        stmt = (
            insert(appointments)
            .values(**self._insert_values(clinic_id, data, created_by))
            .returning(appointments)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_slot_violation(e):
                logger.warning(
                    "slot_taken_on_insert",
                    clinic_id=str(clinic_id),
                    practitioner_id=str(data.practitioner_id),
                    date=data.date.isoformat(),
                    start_time=format_time(data.start_time),
                    sub_slot=data.sub_slot,
                )
                raise self._occupied(data) from e
            raise

        logger.info("appointment_created", appointment_id=str(row["id"]), clinic_id=str(clinic_id))
        return AppointmentResponse.model_validate(dict(row))

    async def create_appointments_batch(
        self,
        clinic_id: UUID,
        data: AppointmentBatchCreate,
        created_by: UUID | None = None,
    ) -> AppointmentBatchResponse:
        """
        Create several appointments at once.

        Accepted candidates occupy their sub-slot for the rest of the batch,
        so the batch cannot double-book against itself. Accepted items are
        inserted in one transaction; rejected items are reported back.

        Args:
            clinic_id: Clinic ID
            data: Candidate appointments
            created_by: ID of the user creating the appointments

        Returns:
            Created appointments and rejected items

        Raises:
            SlotRejectedException: If a sub-slot was taken between the check
                and the insert; nothing from the batch is stored then
        """
        requests = [await self._to_request(clinic_id, item) for item in data.items]
        snapshot = await self.build_snapshot(clinic_id, requests)
        decisions = resolve_batch(requests, snapshot, provisional=True)

        accepted = []
        rejected = []
        for index, (item, decision) in enumerate(zip(data.items, decisions)):
            if decision.accepted:
                accepted.append(item)
            else:
                rejected.append(
                    BatchRejection(
                        index=index,
                        reason=decision.reason,
                        message=decision.message,
                        detail=decision.detail,
                    )
                )

        created = []
        if accepted:
            try:
                for item in accepted:
                    stmt = (
                        insert(appointments)
                        .values(**self._insert_values(clinic_id, item, created_by))
                        .returning(appointments)
                    )
                    result = await self.db.execute(stmt)
                    row = result.mappings().first()
                    created.append(AppointmentResponse.model_validate(dict(row)))
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if _is_slot_violation(e):
                    logger.warning("batch_slot_taken_on_insert", clinic_id=str(clinic_id))
                    raise self._occupied(item) from e
                raise

        logger.info(
            "appointment_batch_created",
            clinic_id=str(clinic_id),
            created=len(created),
            rejected=len(rejected),
        )
        return AppointmentBatchResponse(created=created, rejected=rejected)

    async def get_day_agenda(
        self,
        clinic_id: UUID,
        practitioner_id: UUID,
        day: date,
    ) -> DayAgendaResponse:
        """
        Build the calendar grid of one practitioner for one day.

        Each slot lists its sub-slots with the booking holding them. A slot is
        ``bookable`` when its first free sub-slot would be accepted for a
        regular (non-exclusive) treatment.

        Args:
            clinic_id: Clinic ID
            practitioner_id: Practitioner ID
            day: Agenda date

        Returns:
            Day agenda
        """
        await self.practitioner_service.get_practitioner(clinic_id, practitioner_id)

        probe = SlotRequest(
            clinic_id=clinic_id,
            practitioner_id=practitioner_id,
            date=day,
            start_time=time(0, 0),
            sub_slot=1,
            treatment_type=REGULAR_TREATMENT_PROBE,
        )
        snapshot = await self.build_snapshot(clinic_id, [probe])
        schedule = snapshot.clinic

        by_slot: dict[tuple[time, int], BookedAppointment] = {
            (appt.start_time, appt.sub_slot): appt
            for appt in snapshot.appointments
            if appt.practitioner_id == practitioner_id and appt.date == day
        }

        slots = []
        for start in generate_time_slots(
            schedule.workday_start, schedule.workday_end, schedule.min_slot_minutes
        ):
            sub_slots = []
            free = None
            capacity = snapshot.capacity_for(practitioner_id, day, start)
            for position in range(1, capacity + 1):
                appt = by_slot.get((start, position))
                if appt is None:
                    free = free or position
                    sub_slots.append(AgendaSubSlot(sub_slot=position))
                else:
                    sub_slots.append(
                        AgendaSubSlot(
                            sub_slot=position,
                            appointment_id=appt.id,
                            patient_id=appt.patient_id,
                            treatment_type=appt.treatment_type,
                            status=appt.status,
                        )
                    )

            decision = resolve_slot(
                probe.model_copy(update={"start_time": start, "sub_slot": free or 1}),
                snapshot,
            )
            if decision.accepted and free is None:
                decision = SlotDecision.reject(
                    RejectReason.SLOT_OCCUPIED, f"Every sub-slot at {format_time(start)} is booked"
                )

            slots.append(
                AgendaSlot(
                    start_time=start,
                    bookable=decision.accepted,
                    reason=decision.reason,
                    message=decision.message,
                    sub_slots=sub_slots,
                )
            )

        return DayAgendaResponse(
            practitioner_id=practitioner_id,
            date=day,
            slot_minutes=schedule.min_slot_minutes,
            slots=slots,
        )

    async def get_appointment(self, clinic_id: UUID, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found in the clinic
        """
        stmt = select(appointments).where(
            and_(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
        )

        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row))

    async def list_appointments(
        self,
        clinic_id: UUID,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            clinic_id: Clinic ID
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, ordered by date, time and sub-slot
        """
        conditions = [appointments.c.clinic_id == clinic_id]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.practitioner_id:
            conditions.append(appointments.c.practitioner_id == filters.practitioner_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.from_date:
            conditions.append(appointments.c.date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.date <= filters.to_date)

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(
                appointments.c.date,
                appointments.c.start_time,
                appointments.c.sub_slot,
            )
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def update_appointment_status(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If the transition is not allowed
        """
        current = await self.get_appointment(clinic_id, appointment_id)

        if data.status not in STATUS_TRANSITIONS[current.status]:
            raise BadRequestException(
                f"Cannot change appointment status from '{current.status.value}' "
                f"to '{data.status.value}'"
            )

        now = datetime.now(UTC)
        update_values = {"status": data.status.value, "updated_at": now}

        if data.notes:
            update_values["notes"] = data.notes

        if data.status == AppointmentStatus.CANCELLED:
            update_values["cancelled_at"] = now

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**update_values)
            .returning(appointments)
        )

        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.status.value,
            new_status=data.status.value,
        )
        return AppointmentResponse.model_validate(dict(row))

    async def delete_appointment(self, clinic_id: UUID, appointment_id: UUID) -> None:
        """
        Permanently delete an appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        await self.get_appointment(clinic_id, appointment_id)

        await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
        await self.db.commit()

        logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def mark_past_no_shows(
        self,
        clinic_id: UUID | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Mark ``scheduled`` appointments from past days as ``no_show``.

        "Past" is judged against today in each clinic's own timezone. Clinics
        that turned the sweep off are skipped.

        Args:
            clinic_id: Restrict the sweep to one clinic
            now: Reference instant, defaults to the current time

        Returns:
            Number of appointments updated
        """
        stmt = select(appointments.c.clinic_id).distinct().where(
            appointments.c.status == AppointmentStatus.SCHEDULED.value
        )
        if clinic_id:
            stmt = stmt.where(appointments.c.clinic_id == clinic_id)

        result = await self.db.execute(stmt)
        clinic_ids = [row.clinic_id for row in result]
        if not clinic_ids:
            return 0

        enabled = await self.settings_service.get_auto_no_show_clinics(clinic_ids)
        updated_at = datetime.now(UTC)
        total = 0

        for current_clinic, timezone in enabled.items():
            today = clinic_today(timezone, now)
            result = await self.db.execute(
                update(appointments)
                .where(
                    appointments.c.clinic_id == current_clinic,
                    appointments.c.status == AppointmentStatus.SCHEDULED.value,
                    appointments.c.date < today,
                )
                .values(status=AppointmentStatus.NO_SHOW.value, updated_at=updated_at)
            )
            if result.rowcount:
                logger.info(
                    "no_show_marked",
                    clinic_id=str(current_clinic),
                    count=result.rowcount,
                    before=today.isoformat(),
                )
            total += result.rowcount or 0

        await self.db.commit()

        logger.info("no_show_sweep_completed", updated=total, clinics=len(enabled))
        return total
