"""Initial schema - create bookings, reminders, booking_settings, and audit_log tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


DEFAULT_SETTINGS = [
    ('min_booking_duration', 1, 'Minimum booking duration in hours'),
    ('max_booking_duration', 8, 'Maximum booking duration in hours'),
    ('booking_buffer', 0, 'Buffer time between bookings in minutes'),
    ('advance_booking_days', 30, 'How many days in advance bookings can be made'),
    ('default_open_time', '08:00', 'Default studio opening time'),
    ('default_close_time', '22:00', 'Default studio closing time'),
]


def upgrade() -> None:
    """Create initial database tables."""
    is_postgres = op.get_bind().dialect.name == 'postgresql'

    # Create bookings table
    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('studio', sa.String(length=100), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('contact_identifier', sa.String(length=10), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('session_type', sa.String(length=100), nullable=True),
        sa.Column('session_details', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('external_calendar_ref', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('end_time > start_time', name=op.f('ck_bookings_valid_time_range')),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name=op.f('ck_bookings_valid_status'),
        ),
        sa.CheckConstraint(
            'total_amount IS NULL OR total_amount >= 0',
            name=op.f('ck_bookings_non_negative_amount'),
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_bookings'))
    )

    # Create indexes for bookings
    op.create_index(op.f('ix_bookings_date'), 'bookings', ['date'], unique=False)
    op.create_index(op.f('ix_bookings_contact_identifier'), 'bookings', ['contact_identifier'], unique=False)
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'], unique=False)
    op.create_index('ix_bookings_studio_date_status', 'bookings', ['studio', 'date', 'status'], unique=False)

    if is_postgres:
        # Active bookings of one studio may never share a minute
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        op.execute(
            """
            ALTER TABLE bookings
              ADD CONSTRAINT bookings_no_overlap_per_studio
              EXCLUDE USING gist (
                studio WITH =,
                tsrange(date + start_time, date + end_time, '[)') WITH &&
              )
              WHERE (status IN ('confirmed', 'pending'))
            """
        )

    # Create reminders table
    op.create_table(
        'reminders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "kind IN ('confirmation', 'reminder_24h', 'reminder_1h')",
            name=op.f('ck_reminders_valid_kind'),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'cancelled')",
            name=op.f('ck_reminders_valid_status'),
        ),
        sa.ForeignKeyConstraint(
            ['booking_id'], ['bookings.id'],
            name=op.f('fk_reminders_booking_id_bookings'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_reminders'))
    )

    # Create indexes for reminders
    op.create_index(op.f('ix_reminders_scheduled_at'), 'reminders', ['scheduled_at'], unique=False)
    op.create_index('ix_reminders_booking_status', 'reminders', ['booking_id', 'status'], unique=False)

    # Create booking_settings table
    booking_settings = op.create_table(
        'booking_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_booking_settings')),
        sa.UniqueConstraint('key', name=op.f('uq_booking_settings_key'))
    )
    op.create_index(op.f('ix_booking_settings_created_at'), 'booking_settings', ['created_at'], unique=False)

    op.bulk_insert(
        booking_settings,
        [
            {'key': key, 'value': value, 'description': description}
            for key, value, description in DEFAULT_SETTINGS
        ],
    )

    # Create audit_log table
    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=100), nullable=False),
        sa.Column('actor', sa.String(length=100), nullable=True),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_log'))
    )

    # Create indexes for audit_log
    op.create_index(op.f('ix_audit_log_action'), 'audit_log', ['action'], unique=False)
    op.create_index(op.f('ix_audit_log_created_at'), 'audit_log', ['created_at'], unique=False)
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_audit_log_entity', table_name='audit_log')
    op.drop_index(op.f('ix_audit_log_created_at'), table_name='audit_log')
    op.drop_index(op.f('ix_audit_log_action'), table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index(op.f('ix_booking_settings_created_at'), table_name='booking_settings')
    op.drop_table('booking_settings')

    op.drop_index('ix_reminders_booking_status', table_name='reminders')
    op.drop_index(op.f('ix_reminders_scheduled_at'), table_name='reminders')
    op.drop_table('reminders')

    op.drop_index('ix_bookings_studio_date_status', table_name='bookings')
    op.drop_index(op.f('ix_bookings_created_at'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_contact_identifier'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_date'), table_name='bookings')
    op.drop_table('bookings')
