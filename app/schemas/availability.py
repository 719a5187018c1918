"""Practitioner availability schemas for request/response validation."""

from datetime import time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AvailabilityWindowBase(BaseModel):
    """A weekly availability window."""

    weekday: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    from_time: time
    to_time: time
    slot_minutes: int | None = Field(None, gt=0)
    capacity: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def validate_range(self) -> "AvailabilityWindowBase":
        """Validate the window starts before it ends."""
        if self.from_time >= self.to_time:
            raise ValueError("from_time must be before to_time")
        return self


class AvailabilityReplace(BaseModel):
    """Full weekly availability set for a practitioner."""

    windows: list[AvailabilityWindowBase] = Field(default_factory=list, max_length=100)

    @model_validator(mode="after")
    def validate_no_overlap(self) -> "AvailabilityReplace":
        """Windows of the same weekday must not overlap."""
        by_day: dict[int, list[AvailabilityWindowBase]] = {}
        for window in self.windows:
            by_day.setdefault(window.weekday, []).append(window)

        for weekday, windows in by_day.items():
            windows.sort(key=lambda w: w.from_time)
            for previous, current in zip(windows, windows[1:]):
                if current.from_time < previous.to_time:
                    raise ValueError(f"Overlapping availability windows on weekday {weekday}")
        return self


class AvailabilityWindowResponse(AvailabilityWindowBase):
    """Schema for availability window response."""

    id: UUID
    clinic_id: UUID
    practitioner_id: UUID

    model_config = {"from_attributes": True}
