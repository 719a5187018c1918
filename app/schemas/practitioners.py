"""Practitioner schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PractitionerCreate(BaseModel):
    """Schema for creating a practitioner."""

    display_name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True


class PractitionerResponse(BaseModel):
    """Schema for practitioner response."""

    id: UUID
    clinic_id: UUID
    display_name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
