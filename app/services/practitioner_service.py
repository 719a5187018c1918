"""Practitioner and weekly availability service."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.practitioners import practitioner_availability, practitioners
from app.scheduling import AvailabilityWindow
from app.schemas.availability import AvailabilityReplace, AvailabilityWindowResponse
from app.schemas.practitioners import PractitionerCreate, PractitionerResponse


class PractitionerService:
    """Service for practitioners and their availability windows."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_practitioner(
        self, clinic_id: UUID, data: PractitionerCreate
    ) -> PractitionerResponse:
        """Create a practitioner in a clinic."""
        stmt = (
            insert(practitioners)
            .values(clinic_id=clinic_id, display_name=data.display_name, is_active=data.is_active)
            .returning(practitioners)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        return PractitionerResponse.model_validate(dict(row))

    async def list_practitioners(
        self, clinic_id: UUID, include_inactive: bool = False
    ) -> list[PractitionerResponse]:
        """List practitioners of a clinic ordered by name."""
        conditions = [practitioners.c.clinic_id == clinic_id]
        if not include_inactive:
            conditions.append(practitioners.c.is_active.is_(True))

        stmt = select(practitioners).where(*conditions).order_by(practitioners.c.display_name)
        result = await self.db.execute(stmt)
        return [PractitionerResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def get_practitioner(self, clinic_id: UUID, practitioner_id: UUID) -> dict:
        """
        Get a practitioner of the clinic.

        Raises:
            NotFoundException: If the practitioner does not belong to the clinic
        """
        stmt = select(practitioners).where(
            practitioners.c.id == practitioner_id,
            practitioners.c.clinic_id == clinic_id,
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Practitioner not found")

        return dict(row)

    async def get_names(self, clinic_id: UUID, practitioner_ids: Iterable[UUID]) -> dict[UUID, str]:
        """Display names keyed by practitioner ID."""
        stmt = select(practitioners.c.id, practitioners.c.display_name).where(
            practitioners.c.clinic_id == clinic_id,
            practitioners.c.id.in_(list(practitioner_ids)),
        )
        result = await self.db.execute(stmt)
        return {row.id: row.display_name for row in result}

    async def list_windows(
        self, clinic_id: UUID, practitioner_id: UUID
    ) -> list[AvailabilityWindowResponse]:
        """List a practitioner's weekly availability windows."""
        await self.get_practitioner(clinic_id, practitioner_id)

        stmt = (
            select(practitioner_availability)
            .where(
                practitioner_availability.c.clinic_id == clinic_id,
                practitioner_availability.c.practitioner_id == practitioner_id,
            )
            .order_by(practitioner_availability.c.weekday, practitioner_availability.c.from_time)
        )
        result = await self.db.execute(stmt)
        return [
            AvailabilityWindowResponse.model_validate(dict(row)) for row in result.mappings().all()
        ]

    async def replace_windows(
        self,
        clinic_id: UUID,
        practitioner_id: UUID,
        data: AvailabilityReplace,
    ) -> list[AvailabilityWindowResponse]:
        """
        Replace the whole weekly availability set of a practitioner.

        An empty list removes all windows, which puts the practitioner back
        on the open policy (bookable at any time within the workday).

        Args:
            clinic_id: Clinic ID
            practitioner_id: Practitioner ID
            data: New window set

        Returns:
            Stored windows
        """
        await self.get_practitioner(clinic_id, practitioner_id)

        await self.db.execute(
            delete(practitioner_availability).where(
                practitioner_availability.c.clinic_id == clinic_id,
                practitioner_availability.c.practitioner_id == practitioner_id,
            )
        )

        if data.windows:
            await self.db.execute(
                insert(practitioner_availability),
                [
                    {"clinic_id": clinic_id, "practitioner_id": practitioner_id, **w.model_dump()}
                    for w in data.windows
                ],
            )

        await self.db.commit()
        return await self.list_windows(clinic_id, practitioner_id)

    async def load_windows(
        self, clinic_id: UUID, practitioner_ids: Iterable[UUID]
    ) -> list[AvailabilityWindow]:
        """All weekly windows of the given practitioners, as resolver input."""
        stmt = select(practitioner_availability).where(
            practitioner_availability.c.clinic_id == clinic_id,
            practitioner_availability.c.practitioner_id.in_(list(practitioner_ids)),
        )
        result = await self.db.execute(stmt)
        return [AvailabilityWindow.model_validate(dict(row)) for row in result.mappings().all()]
