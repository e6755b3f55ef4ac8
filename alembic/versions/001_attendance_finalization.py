"""Attendance periods, attendance records and audit logs

Revision ID: 001_attendance_finalization
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_attendance_finalization'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Skip if tables already exist (e.g. local SQLite DB created by the app's create_all())
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = inspector.get_table_names()
    if 'attendance_periods' in existing:
        return

    # Use SQL-standard CURRENT_TIMESTAMP so it works on SQLite and Postgres
    op.create_table(
        'attendance_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('PENDING', 'FINALIZED', 'LOCKED', name='periodstatus'),
            nullable=False,
        ),
        sa.Column('finalized_by', sa.String(), nullable=True),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unlock_reason', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('start_date <= end_date', name='ck_attendance_period_range'),
        sa.UniqueConstraint('start_date', 'end_date', name='uq_attendance_period_range'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_attendance_periods_id'), 'attendance_periods', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_periods_start_date'), 'attendance_periods', ['start_date'], unique=False)
    op.create_index(op.f('ix_attendance_periods_end_date'), 'attendance_periods', ['end_date'], unique=False)
    op.create_index(op.f('ix_attendance_periods_status'), 'attendance_periods', ['status'], unique=False)

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_code', sa.String(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=False),
        sa.Column('clock_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_hours', sa.Float(), nullable=True),
        sa.Column(
            'conflict_resolution',
            sa.Enum('UNRESOLVED', 'REJECTED', 'CONFIRMED', name='conflictresolution'),
            nullable=False,
        ),
        sa.Column('conflict_resolved_by', sa.String(), nullable=True),
        sa.Column('conflict_notes', sa.Text(), nullable=True),
        sa.Column('period_id', sa.Integer(), nullable=True),
        sa.Column('is_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['period_id'], ['attendance_periods.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_code', 'work_date', 'transaction_id', name='uq_attendance_record_source')
    )
    op.create_index(op.f('ix_attendance_records_id'), 'attendance_records', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_records_employee_code'), 'attendance_records', ['employee_code'], unique=False)
    op.create_index(op.f('ix_attendance_records_work_date'), 'attendance_records', ['work_date'], unique=False)
    op.create_index(op.f('ix_attendance_records_conflict_resolution'), 'attendance_records', ['conflict_resolution'], unique=False)
    op.create_index(op.f('ix_attendance_records_period_id'), 'attendance_records', ['period_id'], unique=False)
    op.create_index(op.f('ix_attendance_records_is_finalized'), 'attendance_records', ['is_finalized'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_actor_id'), 'audit_logs', ['actor_id'], unique=False)
    op.create_index(op.f('ix_audit_logs_entity_id'), 'audit_logs', ['entity_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_audit_logs_entity_id'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_actor_id'), table_name='audit_logs')
    op.drop_index(op.f('ix_audit_logs_id'), table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index(op.f('ix_attendance_records_is_finalized'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_period_id'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_conflict_resolution'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_work_date'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_employee_code'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_id'), table_name='attendance_records')
    op.drop_table('attendance_records')

    op.drop_index(op.f('ix_attendance_periods_status'), table_name='attendance_periods')
    op.drop_index(op.f('ix_attendance_periods_end_date'), table_name='attendance_periods')
    op.drop_index(op.f('ix_attendance_periods_start_date'), table_name='attendance_periods')
    op.drop_index(op.f('ix_attendance_periods_id'), table_name='attendance_periods')
    op.drop_table('attendance_periods')

    sa.Enum(name='conflictresolution').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='periodstatus').drop(op.get_bind(), checkfirst=True)
