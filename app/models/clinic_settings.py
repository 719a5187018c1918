"""Clinic scheduling settings model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    Time,
    Uuid,
    func,
    true,
)

metadata = MetaData()

clinic_settings = Table(
    "clinic_settings",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("clinic_id", Uuid, nullable=False, unique=True),
    # Booking bounds; workday_end is the latest start time allowed
    Column("workday_start", Time, nullable=False),
    Column("workday_end", Time, nullable=False),
    Column("min_slot_minutes", Integer, nullable=False),
    Column("sub_slots_per_block", Integer, nullable=False),
    # Example: ["drenaje", "masaje"]; NULL means the application default
    Column("exclusive_treatments", JSON, nullable=True),
    Column("timezone", Text, nullable=False),
    Column("auto_mark_no_show", Boolean, nullable=False, default=True, server_default=true()),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("workday_start < workday_end", name="clinic_settings_workday_check"),
    CheckConstraint("min_slot_minutes > 0", name="clinic_settings_slot_minutes_check"),
    CheckConstraint("sub_slots_per_block >= 1", name="clinic_settings_sub_slots_check"),
)
