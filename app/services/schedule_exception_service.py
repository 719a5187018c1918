"""Schedule exception and holiday service."""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.schedule_exceptions import holiday_calendar, schedule_exceptions
from app.scheduling import ExceptionType, ScheduleException
from app.schemas.schedule_exceptions import (
    HolidayCreate,
    HolidayResponse,
    ScheduleExceptionCreate,
    ScheduleExceptionResponse,
)
from app.services.practitioner_service import PractitionerService

logger = structlog.get_logger()


class ScheduleExceptionService:
    """Service for date-specific schedule overrides."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_exception(
        self,
        clinic_id: UUID,
        data: ScheduleExceptionCreate,
        created_by: UUID | None = None,
    ) -> ScheduleExceptionResponse:
        """
        Create a schedule exception.

        Args:
            clinic_id: Clinic ID
            data: Exception data
            created_by: ID of the user creating it

        Returns:
            Created exception

        Raises:
            NotFoundException: If the practitioner does not belong to the clinic
        """
        if data.practitioner_id:
            await PractitionerService(self.db).get_practitioner(clinic_id, data.practitioner_id)

        values = data.model_dump()
        values["type"] = data.type.value

        stmt = (
            insert(schedule_exceptions)
            .values(clinic_id=clinic_id, created_by=created_by, **values)
            .returning(schedule_exceptions)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        logger.info(
            "schedule_exception_created",
            clinic_id=str(clinic_id),
            practitioner_id=str(data.practitioner_id) if data.practitioner_id else None,
            date=data.date.isoformat(),
            type=data.type.value,
        )
        return ScheduleExceptionResponse.model_validate(dict(row))

    async def list_exceptions(
        self,
        clinic_id: UUID,
        from_date: date,
        to_date: date,
        practitioner_id: UUID | None = None,
    ) -> list[ScheduleExceptionResponse]:
        """List exceptions of a clinic in a date range, ordered by date."""
        conditions = [
            schedule_exceptions.c.clinic_id == clinic_id,
            schedule_exceptions.c.date >= from_date,
            schedule_exceptions.c.date <= to_date,
        ]
        if practitioner_id:
            conditions.append(
                or_(
                    schedule_exceptions.c.practitioner_id == practitioner_id,
                    schedule_exceptions.c.practitioner_id.is_(None),
                )
            )

        stmt = select(schedule_exceptions).where(*conditions).order_by(schedule_exceptions.c.date)
        result = await self.db.execute(stmt)
        return [
            ScheduleExceptionResponse.model_validate(dict(row)) for row in result.mappings().all()
        ]

    async def get_exception(self, clinic_id: UUID, exception_id: UUID) -> ScheduleExceptionResponse:
        """
        Get a schedule exception.

        Raises:
            NotFoundException: If the exception does not exist in the clinic
        """
        stmt = select(schedule_exceptions).where(
            schedule_exceptions.c.id == exception_id,
            schedule_exceptions.c.clinic_id == clinic_id,
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Schedule exception not found")

        return ScheduleExceptionResponse.model_validate(dict(row))

    async def delete_exception(self, clinic_id: UUID, exception_id: UUID) -> None:
        """Delete a schedule exception."""
        await self.get_exception(clinic_id, exception_id)

        await self.db.execute(
            delete(schedule_exceptions).where(schedule_exceptions.c.id == exception_id)
        )
        await self.db.commit()

    async def create_holiday(self, clinic_id: UUID, data: HolidayCreate) -> HolidayResponse:
        """Create a holiday for the clinic, or for every clinic."""
        stmt = (
            insert(holiday_calendar)
            .values(
                clinic_id=None if data.all_clinics else clinic_id,
                date=data.date,
                name=data.name,
                country_code=data.country_code,
            )
            .returning(holiday_calendar)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        return HolidayResponse.model_validate(dict(row))

    async def list_holidays(
        self, clinic_id: UUID, from_date: date, to_date: date
    ) -> list[HolidayResponse]:
        """List holidays that apply to the clinic in a date range."""
        stmt = (
            select(holiday_calendar)
            .where(
                or_(
                    holiday_calendar.c.clinic_id == clinic_id,
                    holiday_calendar.c.clinic_id.is_(None),
                ),
                holiday_calendar.c.date >= from_date,
                holiday_calendar.c.date <= to_date,
            )
            .order_by(holiday_calendar.c.date)
        )
        result = await self.db.execute(stmt)
        return [HolidayResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def load_for_dates(
        self, clinic_id: UUID, dates: Iterable[date]
    ) -> list[ScheduleException]:
        """
        Exceptions and holidays on the given dates, as resolver input.

        Holidays become clinic-wide ``clinic_closed`` exceptions named after
        the holiday.
        """
        dates = sorted(set(dates))
        if not dates:
            return []

        result = await self.db.execute(
            select(schedule_exceptions).where(
                schedule_exceptions.c.clinic_id == clinic_id,
                schedule_exceptions.c.date.in_(dates),
            )
        )
        loaded = [ScheduleException.model_validate(dict(row)) for row in result.mappings().all()]

        result = await self.db.execute(
            select(holiday_calendar).where(
                or_(
                    holiday_calendar.c.clinic_id == clinic_id,
                    holiday_calendar.c.clinic_id.is_(None),
                ),
                holiday_calendar.c.date.in_(dates),
            )
        )
        for row in result.mappings().all():
            loaded.append(
                ScheduleException(
                    clinic_id=clinic_id,
                    date=row["date"],
                    type=ExceptionType.CLINIC_CLOSED,
                    reason=row["name"],
                )
            )

        return loaded
