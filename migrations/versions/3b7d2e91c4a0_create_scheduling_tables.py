"""create doctor schedules, time off and appointments tables

Revision ID: 3b7d2e91c4a0
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7d2e91c4a0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE_STATUS_PREDICATE = "status NOT IN ('rejected', 'cancelled')"


def upgrade() -> None:
    op.create_table(
        "doctor_schedules",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("doctor_id", sa.String(length=36), nullable=False),
        sa.Column("hospital_id", sa.String(length=36), nullable=False),
        sa.Column("weekday", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("break_start_time", sa.Time(), nullable=True),
        sa.Column("break_end_time", sa.Time(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "hospital_id", "weekday", name="uq_doctor_schedules_weekday"),
    )
    op.create_index(op.f("ix_doctor_schedules_id"), "doctor_schedules", ["id"], unique=False)
    op.create_index(op.f("ix_doctor_schedules_doctor_id"), "doctor_schedules", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_doctor_schedules_hospital_id"), "doctor_schedules", ["hospital_id"], unique=False)

    op.create_table(
        "doctor_time_off",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("doctor_id", sa.String(length=36), nullable=False),
        sa.Column("hospital_id", sa.String(length=36), nullable=False),
        sa.Column("off_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("doctor_id", "hospital_id", "off_date", name="uq_doctor_time_off_date"),
    )
    op.create_index(op.f("ix_doctor_time_off_id"), "doctor_time_off", ["id"], unique=False)
    op.create_index(op.f("ix_doctor_time_off_doctor_id"), "doctor_time_off", ["doctor_id"], unique=False)
    op.create_index(op.f("ix_doctor_time_off_hospital_id"), "doctor_time_off", ["hospital_id"], unique=False)

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=36), nullable=False),
        sa.Column("doctor_id", sa.String(length=36), nullable=False),
        sa.Column("hospital_id", sa.String(length=36), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_appointments_id"), "appointments", ["id"], unique=False)
    op.create_index(op.f("ix_appointments_patient_id"), "appointments", ["patient_id"], unique=False)
    op.create_index(op.f("ix_appointments_hospital_id"), "appointments", ["hospital_id"], unique=False)
    op.create_index(op.f("ix_appointments_status"), "appointments", ["status"], unique=False)
    op.create_index(
        "ix_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"], unique=False
    )
    # At most one live appointment per doctor, date and slot start
    op.create_index(
        "uq_appointments_live_slot",
        "appointments",
        ["doctor_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text(LIVE_STATUS_PREDICATE),
        sqlite_where=sa.text(LIVE_STATUS_PREDICATE),
    )


def downgrade() -> None:
    op.drop_index("uq_appointments_live_slot", table_name="appointments")
    op.drop_index("ix_appointments_doctor_date", table_name="appointments")
    op.drop_index(op.f("ix_appointments_status"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_hospital_id"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_patient_id"), table_name="appointments")
    op.drop_index(op.f("ix_appointments_id"), table_name="appointments")
    op.drop_table("appointments")

    op.drop_index(op.f("ix_doctor_time_off_hospital_id"), table_name="doctor_time_off")
    op.drop_index(op.f("ix_doctor_time_off_doctor_id"), table_name="doctor_time_off")
    op.drop_index(op.f("ix_doctor_time_off_id"), table_name="doctor_time_off")
    op.drop_table("doctor_time_off")

    op.drop_index(op.f("ix_doctor_schedules_hospital_id"), table_name="doctor_schedules")
    op.drop_index(op.f("ix_doctor_schedules_doctor_id"), table_name="doctor_schedules")
    op.drop_index(op.f("ix_doctor_schedules_id"), table_name="doctor_schedules")
    op.drop_table("doctor_schedules")
