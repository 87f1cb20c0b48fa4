"""initial schema baseline

Revision ID: 20251201090000
Revises:
Create Date: 2025-12-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20251201090000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'doctors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('clinic_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('availability', sa.JSON(), nullable=True),
        sa.Column('leave', sa.JSON(), nullable=True),
        sa.Column('slot_duration_minutes', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_doctors_id', 'doctors', ['id'])
    op.create_index('ix_doctors_clinic_id', 'doctors', ['clinic_id'])

    op.create_table(
        'doctor_leaves',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('leave_start_date', sa.Date(), nullable=False),
        sa.Column('leave_end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_doctor_leaves_id', 'doctor_leaves', ['id'])
    op.create_index('idx_doctor_leaves_doctor_active', 'doctor_leaves', ['doctor_id', 'is_active'])
    op.create_index('idx_doctor_leaves_dates', 'doctor_leaves', ['leave_start_date', 'leave_end_date'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('appointment_uid', sa.String(length=32), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.String(length=64), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('contact_number', sa.String(length=32), nullable=True),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.String(length=5), nullable=False),
        sa.Column('appointment_type', sa.String(length=20), nullable=False, server_default='in_person'),
        sa.Column('source', sa.String(length=20), nullable=False, server_default='clinic'),
        sa.Column('provisional', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'cancelled', 'completed', 'no-show')",
            name='check_valid_appointment_status'
        ),
        sa.ForeignKeyConstraint(['doctor_id'], ['doctors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_uid'),
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'])
    op.create_index(
        'idx_appointments_doctor_date_status', 'appointments',
        ['doctor_id', 'appointment_date', 'status']
    )

    # One non-cancelled booking per doctor, date and start time.
    # Cancelled rows stay out of the index so the slot can be booked again.
    op.execute("""
        CREATE UNIQUE INDEX uq_appointment_doctor_slot
        ON appointments (doctor_id, appointment_date, appointment_time)
        WHERE status != 'cancelled'
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uq_appointment_doctor_slot")
    op.drop_index('idx_appointments_doctor_date_status', table_name='appointments')
    op.drop_index('ix_appointments_id', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('idx_doctor_leaves_dates', table_name='doctor_leaves')
    op.drop_index('idx_doctor_leaves_doctor_active', table_name='doctor_leaves')
    op.drop_index('ix_doctor_leaves_id', table_name='doctor_leaves')
    op.drop_table('doctor_leaves')
    op.drop_index('ix_doctors_clinic_id', table_name='doctors')
    op.drop_index('ix_doctors_id', table_name='doctors')
    op.drop_table('doctors')
