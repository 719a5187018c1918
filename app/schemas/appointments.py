"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.scheduling import AppointmentStatus, RejectReason


class AppointmentMode(str, Enum):
    """Appointment mode enumeration."""

    IN_PERSON = "in_person"
    VIRTUAL = "virtual"
    HOME_VISIT = "home_visit"


class SlotBase(BaseModel):
    """Fields identifying a bookable slot."""

    practitioner_id: UUID
    date: date
    start_time: time = Field(..., description="Start time, HH:mm")
    sub_slot: int = Field(..., ge=1, description="Parallel position within the slot, 1-based")
    treatment_type: str = Field(..., min_length=1, max_length=50)

    @field_validator("treatment_type")
    @classmethod
    def normalize_treatment_type(cls, v: str) -> str:
        """Store treatment types in lowercase."""
        return v.strip().lower()


class SlotCheckRequest(SlotBase):
    """Schema for checking a slot without booking it."""

    exclude_appointment_id: UUID | None = Field(
        None, description="Appointment to ignore, when moving an existing booking"
    )


class AppointmentCreate(SlotBase):
    """Schema for creating a new appointment."""

    patient_id: UUID | None = None
    mode: AppointmentMode = AppointmentMode.IN_PERSON
    notes: str | None = Field(None, max_length=1000)


class AppointmentBatchCreate(BaseModel):
    """Schema for creating several appointments in one request."""

    items: list[AppointmentCreate] = Field(..., min_length=1, max_length=100)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    clinic_id: UUID
    practitioner_id: UUID
    patient_id: UUID | None
    date: date
    start_time: time
    sub_slot: int
    duration_minutes: int
    treatment_type: str
    mode: str
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    practitioner_id: UUID | None = None
    patient_id: UUID | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)


class SlotDecisionResponse(BaseModel):
    """Schema for a slot check result."""

    accepted: bool
    reason: RejectReason | None = None
    message: str | None = None
    detail: str | None = None
    conflict_appointment_id: UUID | None = None


class BatchRejection(BaseModel):
    """A batch item that was not booked."""

    index: int
    reason: RejectReason
    message: str
    detail: str | None = None


class AppointmentBatchResponse(BaseModel):
    """Schema for batch creation result."""

    created: list[AppointmentResponse]
    rejected: list[BatchRejection]


class NoShowSweepResponse(BaseModel):
    """Schema for the no-show sweep result."""

    updated: int
    as_of: date


class AgendaSubSlot(BaseModel):
    """One parallel position of a slot in the day agenda."""

    sub_slot: int
    appointment_id: UUID | None = None
    patient_id: UUID | None = None
    treatment_type: str | None = None
    status: AppointmentStatus | None = None


class AgendaSlot(BaseModel):
    """A slot start time in the day agenda."""

    start_time: time
    bookable: bool = Field(..., description="A regular treatment can still be booked here")
    reason: RejectReason | None = None
    message: str | None = None
    sub_slots: list[AgendaSubSlot]


class DayAgendaResponse(BaseModel):
    """Calendar grid of one practitioner for one day."""

    practitioner_id: UUID
    date: date
    slot_minutes: int
    slots: list[AgendaSlot]
