"""Clinic settings schemas for request/response validation."""

from datetime import time
from uuid import UUID
from zoneinfo import available_timezones

from pydantic import BaseModel, Field, field_validator, model_validator


class ClinicSettingsUpdate(BaseModel):
    """Schema for creating or replacing clinic scheduling settings."""

    workday_start: time = time(8, 0)
    workday_end: time = Field(time(19, 0), description="Latest start time allowed")
    min_slot_minutes: int = Field(30, gt=0, le=240)
    sub_slots_per_block: int = Field(5, ge=1, le=20)
    exclusive_treatments: list[str] | None = Field(
        None, description="Treatment types that need the whole slot; null uses the default set"
    )
    timezone: str = "America/Argentina/Buenos_Aires"
    auto_mark_no_show: bool = True

    @field_validator("exclusive_treatments")
    @classmethod
    def normalize_treatments(cls, v: list[str] | None) -> list[str] | None:
        """Lowercase and de-duplicate treatment types."""
        if v is None:
            return None
        return sorted({item.strip().lower() for item in v if item.strip()})

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the timezone name."""
        if v not in available_timezones():
            raise ValueError(f"Unknown timezone '{v}'")
        return v

    @model_validator(mode="after")
    def validate_workday(self) -> "ClinicSettingsUpdate":
        """Validate the workday bounds."""
        if self.workday_start >= self.workday_end:
            raise ValueError("workday_start must be before workday_end")
        return self


class ClinicSettingsResponse(BaseModel):
    """Schema for clinic settings response."""

    clinic_id: UUID
    workday_start: time
    workday_end: time
    min_slot_minutes: int
    sub_slots_per_block: int
    exclusive_treatments: list[str]
    timezone: str
    auto_mark_no_show: bool
    is_default: bool = Field(False, description="True when the clinic has no stored settings")
