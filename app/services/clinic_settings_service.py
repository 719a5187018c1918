"""Clinic settings service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.clinic_settings import clinic_settings
from app.scheduling import ClinicSchedule
from app.schemas.clinic_settings import ClinicSettingsResponse, ClinicSettingsUpdate


class ClinicSettingsService:
    """Service for per-clinic scheduling settings."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _get_row(self, clinic_id: UUID) -> dict | None:
        stmt = select(clinic_settings).where(clinic_settings.c.clinic_id == clinic_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    def _to_schedule(row: dict | None) -> ClinicSchedule:
        if row is None:
            return ClinicSchedule()

        values = {
            "workday_start": row["workday_start"],
            "workday_end": row["workday_end"],
            "min_slot_minutes": row["min_slot_minutes"],
            "sub_slots_per_block": row["sub_slots_per_block"],
            "timezone": row["timezone"],
        }
        if row["exclusive_treatments"] is not None:
            values["exclusive_treatments"] = row["exclusive_treatments"]
        return ClinicSchedule(**values)

    async def get_schedule(self, clinic_id: UUID) -> ClinicSchedule:
        """Scheduling bounds for the clinic, falling back to defaults."""
        return self._to_schedule(await self._get_row(clinic_id))

    async def get_settings(self, clinic_id: UUID) -> ClinicSettingsResponse:
        """
        Get clinic settings.

        Args:
            clinic_id: Clinic ID

        Returns:
            Stored settings, or the defaults flagged with ``is_default``
        """
        row = await self._get_row(clinic_id)
        schedule = self._to_schedule(row)

        return ClinicSettingsResponse(
            clinic_id=clinic_id,
            workday_start=schedule.workday_start,
            workday_end=schedule.workday_end,
            min_slot_minutes=schedule.min_slot_minutes,
            sub_slots_per_block=schedule.sub_slots_per_block,
            exclusive_treatments=sorted(schedule.exclusive_treatments),
            timezone=schedule.timezone,
            auto_mark_no_show=row["auto_mark_no_show"] if row else True,
            is_default=row is None,
        )

    async def upsert_settings(
        self,
        clinic_id: UUID,
        data: ClinicSettingsUpdate,
    ) -> ClinicSettingsResponse:
        """
        Create or replace clinic settings.

        Args:
            clinic_id: Clinic ID
            data: New settings

        Returns:
            Stored settings
        """
        values = data.model_dump()
        existing = await self._get_row(clinic_id)

        if existing:
            stmt = (
                update(clinic_settings)
                .where(clinic_settings.c.clinic_id == clinic_id)
                .values(**values, updated_at=datetime.now(UTC))
            )
        else:
            stmt = insert(clinic_settings).values(clinic_id=clinic_id, **values)

        await self.db.execute(stmt)
        await self.db.commit()

        return await self.get_settings(clinic_id)

    async def get_auto_no_show_clinics(self, clinic_ids: list[UUID]) -> dict[UUID, str]:
        """
        Clinics whose no-show sweep is enabled, mapped to their timezone.

        Clinics without a settings row use the defaults (sweep on).
        """
        stmt = select(clinic_settings).where(clinic_settings.c.clinic_id.in_(clinic_ids))
        result = await self.db.execute(stmt)
        stored = {row["clinic_id"]: row for row in result.mappings().all()}

        enabled = {}
        for clinic_id in clinic_ids:
            row = stored.get(clinic_id)
            if row is None:
                enabled[clinic_id] = settings.clinic_timezone
            elif row["auto_mark_no_show"]:
                enabled[clinic_id] = row["timezone"]
        return enabled
