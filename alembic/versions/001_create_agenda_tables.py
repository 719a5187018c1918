"""Create clinic agenda tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Clinic settings
    op.create_table(
        "clinic_settings",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("workday_start", sa.Time(), nullable=False),
        sa.Column("workday_end", sa.Time(), nullable=False),
        sa.Column("min_slot_minutes", sa.Integer(), nullable=False),
        sa.Column("sub_slots_per_block", sa.Integer(), nullable=False),
        sa.Column("exclusive_treatments", postgresql.JSONB(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=False),
        sa.Column("auto_mark_no_show", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("workday_start < workday_end", name="clinic_settings_workday_check"),
        sa.CheckConstraint("min_slot_minutes > 0", name="clinic_settings_slot_minutes_check"),
        sa.CheckConstraint("sub_slots_per_block >= 1", name="clinic_settings_sub_slots_check"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("clinic_id", name="clinic_settings_clinic_id_key"),
    )

    # Practitioners
    op.create_table(
        "practitioners",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_practitioners_clinic_id", "practitioners", ["clinic_id"])

    # Weekly availability
    op.create_table(
        "practitioner_availability",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("practitioner_id", postgresql.UUID(), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("from_time", sa.Time(), nullable=False),
        sa.Column("to_time", sa.Time(), nullable=False),
        sa.Column("slot_minutes", sa.Integer(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "weekday BETWEEN 0 AND 6", name="practitioner_availability_weekday_check"
        ),
        sa.CheckConstraint("from_time < to_time", name="practitioner_availability_range_check"),
        sa.ForeignKeyConstraint(
            ["practitioner_id"],
            ["practitioners.id"],
            name="fk_practitioner_availability_practitioner",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_practitioner_availability_lookup",
        "practitioner_availability",
        ["clinic_id", "practitioner_id", "weekday"],
    )

    # Schedule exceptions
    op.create_table(
        "schedule_exceptions",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("practitioner_id", postgresql.UUID(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("from_time", sa.Time(), nullable=True),
        sa.Column("to_time", sa.Time(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('clinic_closed', 'practitioner_block', 'extended_hours')",
            name="schedule_exceptions_type_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_schedule_exceptions_clinic_date", "schedule_exceptions", ["clinic_id", "date"]
    )

    # Holidays
    op.create_table(
        "holiday_calendar",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("country_code", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_holiday_calendar_date", "holiday_calendar", ["date"])

    # Appointments
    op.create_table(
        "appointments",
        _uuid_pk(),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("practitioner_id", postgresql.UUID(), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("sub_slot", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("treatment_type", sa.Text(), nullable=False),
        sa.Column("mode", sa.Text(), server_default="in_person", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("created_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "mode IN ('in_person', 'virtual', 'home_visit')",
            name="appointments_mode_check",
        ),
        sa.CheckConstraint("sub_slot >= 1", name="appointments_sub_slot_check"),
        sa.ForeignKeyConstraint(
            ["practitioner_id"],
            ["practitioners.id"],
            name="fk_appointments_practitioner",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_appointments_practitioner_date",
        "appointments",
        ["clinic_id", "practitioner_id", "date"],
    )
    op.create_index("idx_appointments_patient_id", "appointments", ["patient_id"])

    # One active booking per sub-slot
    op.create_index(
        "uq_appointments_active_slot",
        "appointments",
        ["clinic_id", "practitioner_id", "date", "start_time", "sub_slot"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("uq_appointments_active_slot", table_name="appointments")
    op.drop_index("idx_appointments_patient_id", table_name="appointments")
    op.drop_index("idx_appointments_practitioner_date", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("idx_holiday_calendar_date", table_name="holiday_calendar")
    op.drop_table("holiday_calendar")

    op.drop_index("idx_schedule_exceptions_clinic_date", table_name="schedule_exceptions")
    op.drop_table("schedule_exceptions")

    op.drop_index("idx_practitioner_availability_lookup", table_name="practitioner_availability")
    op.drop_table("practitioner_availability")

    op.drop_index("idx_practitioners_clinic_id", table_name="practitioners")
    op.drop_table("practitioners")

    op.drop_table("clinic_settings")
