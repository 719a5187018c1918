"""Read-only scheduling state handed to the slot resolver.

Callers load these from storage and pass them in explicitly. Nothing here
touches the database.
"""

from datetime import date, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.config import settings
from app.scheduling.timeutils import parse_time, weekday_index

DEFAULT_EXCLUSIVE_TREATMENTS: frozenset[str] = frozenset({"drenaje", "masaje"})


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ExceptionType(str, Enum):
    """Kinds of date-specific schedule overrides."""

    CLINIC_CLOSED = "clinic_closed"
    PRACTITIONER_BLOCK = "practitioner_block"
    EXTENDED_HOURS = "extended_hours"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ClinicSchedule(_Frozen):
    """Per-clinic scheduling bounds and granularity."""

    workday_start: time = time(8, 0)
    workday_end: time = time(19, 0)
    min_slot_minutes: int = Field(default=30, gt=0)
    sub_slots_per_block: int = Field(default=5, ge=1)
    exclusive_treatments: frozenset[str] = Field(
        default_factory=lambda: settings.exclusive_treatments or DEFAULT_EXCLUSIVE_TREATMENTS
    )
    timezone: str = Field(default_factory=lambda: settings.clinic_timezone)

    @field_validator("workday_start", "workday_end", mode="before")
    @classmethod
    def _parse_times(cls, v):
        return parse_time(v)

    @field_validator("exclusive_treatments", mode="before")
    @classmethod
    def _normalize_treatments(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return frozenset(str(item).strip().lower() for item in v if str(item).strip())

    def is_exclusive(self, treatment_type: str | None) -> bool:
        """Whether a treatment needs the practitioner's whole slot."""
        return bool(treatment_type) and treatment_type.strip().lower() in self.exclusive_treatments


class AvailabilityWindow(_Frozen):
    """A recurring weekly interval during which a practitioner is bookable."""

    practitioner_id: UUID
    weekday: int = Field(..., ge=0, le=6)
    from_time: time
    to_time: time
    slot_minutes: int | None = None
    capacity: int | None = None

    @field_validator("from_time", "to_time", mode="before")
    @classmethod
    def _parse_times(cls, v):
        return parse_time(v)

    def contains(self, start: time) -> bool:
        return self.from_time <= start < self.to_time


class ScheduleException(_Frozen):
    """A date-specific closure, block or extension of availability."""

    clinic_id: UUID
    practitioner_id: UUID | None = None
    date: date
    from_time: time | None = None
    to_time: time | None = None
    type: ExceptionType
    reason: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _accept_closed_alias(cls, v):
        if v == "closed":
            return ExceptionType.CLINIC_CLOSED
        return v

    @field_validator("from_time", "to_time", mode="before")
    @classmethod
    def _parse_times(cls, v):
        return None if v is None else parse_time(v)

    @property
    def is_full_day(self) -> bool:
        return self.from_time is None or self.to_time is None

    def covers(self, start: time) -> bool:
        """Whether ``start`` falls inside this exception's range."""
        if self.is_full_day:
            return True
        return self.from_time <= start < self.to_time


class BookedAppointment(_Frozen):
    """An appointment already persisted for the clinic.

    ``id`` is None for candidates provisionally accepted within a batch.
    """

    id: UUID | None = None
    clinic_id: UUID
    practitioner_id: UUID
    patient_id: UUID | None = None
    date: date
    start_time: time
    sub_slot: int
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    treatment_type: str | None = None

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start(cls, v):
        return parse_time(v)

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class SlotRequest(_Frozen):
    """A candidate booking."""

    clinic_id: UUID
    practitioner_id: UUID
    date: date
    start_time: time
    sub_slot: int = Field(..., ge=1)
    treatment_type: str
    exclude_appointment_id: UUID | None = None

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start(cls, v):
        return parse_time(v)

    @field_validator("treatment_type")
    @classmethod
    def _normalize_treatment(cls, v: str) -> str:
        return v.strip().lower()


class SchedulingSnapshot(_Frozen):
    """Scheduling state for one clinic.

    May cover several practitioners and dates (a batch); the resolver only
    looks at rows matching the request it is evaluating.
    """

    clinic: ClinicSchedule = Field(default_factory=ClinicSchedule)
    windows: tuple[AvailabilityWindow, ...] = ()
    exceptions: tuple[ScheduleException, ...] = ()
    appointments: tuple[BookedAppointment, ...] = ()
    practitioner_names: dict[UUID, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_windows(self) -> "SchedulingSnapshot":
        for window in self.windows:
            if window.from_time >= window.to_time:
                raise ValueError("Availability window must start before it ends")
        return self

    def capacity_for(self, practitioner_id: UUID, day: date, start: time) -> int:
        """Sub-slots a practitioner offers at ``start``.

        Taken from the weekly window covering the start time when it sets a
        capacity, otherwise the clinic's ``sub_slots_per_block``.
        """
        weekday = weekday_index(day)
        for window in self.windows:
            if (
                window.practitioner_id == practitioner_id
                and window.weekday == weekday
                and window.contains(start)
                and window.capacity
            ):
                return min(window.capacity, self.clinic.sub_slots_per_block)
        return self.clinic.sub_slots_per_block

    def with_appointment(self, appointment: BookedAppointment) -> "SchedulingSnapshot":
        """Copy of this snapshot with one more booked appointment."""
        return self.model_copy(update={"appointments": (*self.appointments, appointment)})
