"""Schedule exception and holiday schemas for request/response validation."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.scheduling import ExceptionType


class ScheduleExceptionCreate(BaseModel):
    """Schema for creating a schedule exception."""

    practitioner_id: UUID | None = None
    date: date
    from_time: time | None = None
    to_time: time | None = None
    type: ExceptionType
    reason: str | None = Field(None, max_length=500)

    @field_validator("type", mode="before")
    @classmethod
    def accept_closed_alias(cls, v):
        """Accept 'closed' as shorthand for 'clinic_closed'."""
        return ExceptionType.CLINIC_CLOSED if v == "closed" else v

    @model_validator(mode="after")
    def validate_exception(self) -> "ScheduleExceptionCreate":
        """Validate time range and practitioner requirements."""
        if (self.from_time is None) != (self.to_time is None):
            raise ValueError("from_time and to_time must be given together")
        if self.from_time is not None and self.from_time >= self.to_time:
            raise ValueError("from_time must be before to_time")
        if self.type == ExceptionType.PRACTITIONER_BLOCK and self.practitioner_id is None:
            raise ValueError("practitioner_block requires practitioner_id")
        if self.type == ExceptionType.EXTENDED_HOURS and self.from_time is None:
            raise ValueError("extended_hours requires from_time and to_time")
        return self


class ScheduleExceptionResponse(BaseModel):
    """Schema for schedule exception response."""

    id: UUID
    clinic_id: UUID
    practitioner_id: UUID | None
    date: date
    from_time: time | None
    to_time: time | None
    type: ExceptionType
    reason: str | None
    created_by: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class HolidayCreate(BaseModel):
    """Schema for creating a holiday."""

    date: date
    name: str = Field(..., min_length=1, max_length=200)
    country_code: str | None = Field(None, min_length=2, max_length=2)
    all_clinics: bool = Field(False, description="Apply to every clinic instead of this one")


class HolidayResponse(BaseModel):
    """Schema for holiday response."""

    id: UUID
    clinic_id: UUID | None
    date: date
    name: str
    country_code: str | None

    model_config = {"from_attributes": True}
