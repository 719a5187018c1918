"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("clinic_id", Uuid, nullable=False),
    Column("practitioner_id", Uuid, nullable=False),
    Column("patient_id", Uuid, nullable=True),
    # Slot
    Column("date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("sub_slot", Integer, nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default=text("30")),
    # Appointment details
    Column("treatment_type", Text, nullable=False),
    Column("mode", Text, nullable=False, server_default="in_person"),
    Column("notes", Text, nullable=True),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    # Audit fields
    Column("created_by", Uuid, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "mode IN ('in_person', 'virtual', 'home_visit')",
        name="appointments_mode_check",
    ),
    CheckConstraint("sub_slot >= 1", name="appointments_sub_slot_check"),
)

Index(
    "idx_appointments_practitioner_date",
    appointments.c.clinic_id,
    appointments.c.practitioner_id,
    appointments.c.date,
)
Index("idx_appointments_patient_id", appointments.c.patient_id)

# One active booking per sub-slot; cancelled rows free the slot
Index(
    "uq_appointments_active_slot",
    appointments.c.clinic_id,
    appointments.c.practitioner_id,
    appointments.c.date,
    appointments.c.start_time,
    appointments.c.sub_slot,
    unique=True,
    postgresql_where=text("status <> 'cancelled'"),
    sqlite_where=text("status <> 'cancelled'"),
)
