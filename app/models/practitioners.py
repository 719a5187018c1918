"""Practitioner and weekly availability models using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
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

practitioners = Table(
    "practitioners",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("clinic_id", Uuid, nullable=False),
    Column("display_name", Text, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

Index("idx_practitioners_clinic_id", practitioners.c.clinic_id)

# Weekly windows; weekday 0 = Sunday ... 6 = Saturday
practitioner_availability = Table(
    "practitioner_availability",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("clinic_id", Uuid, nullable=False),
    Column("practitioner_id", Uuid, nullable=False),
    Column("weekday", Integer, nullable=False),
    Column("from_time", Time, nullable=False),
    Column("to_time", Time, nullable=False),
    Column("slot_minutes", Integer, nullable=True),
    Column("capacity", Integer, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("weekday BETWEEN 0 AND 6", name="practitioner_availability_weekday_check"),
    CheckConstraint("from_time < to_time", name="practitioner_availability_range_check"),
)

Index(
    "idx_practitioner_availability_lookup",
    practitioner_availability.c.clinic_id,
    practitioner_availability.c.practitioner_id,
    practitioner_availability.c.weekday,
)
