"""create_scheduling_schema

Revision ID: 5c1f0a7d2e9b
Revises:
Create Date: 2026-10-18 10:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5c1f0a7d2e9b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

user_role = sa.Enum('CUSTOMER', 'VENDOR', 'STAFF', 'ADMIN', name='user_role')
vendor_status = sa.Enum('PENDING', 'APPROVED', 'SUSPENDED', 'REJECTED', name='vendor_status')
staff_preference = sa.Enum('ANY', 'SPECIFIC', name='staff_preference')
booking_status = sa.Enum('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW', name='booking_status')
payment_status = sa.Enum(
    'PENDING', 'PAID', 'REFUND_PENDING', 'REFUNDED', 'REFUND_FAILED', name='payment_status'
)
notification_type = sa.Enum(
    'BOOKING_CONFIRMATION', 'BOOKING_CANCELLATION', 'BOOKING_REMINDER', 'REFUND_INITIATED',
    name='notification_type',
)
notification_channel = sa.Enum('EMAIL', 'SMS', 'CONSOLE', name='notification_channel')
delivery_status = sa.Enum('PENDING', 'SENT', 'FAILED', name='delivery_status')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('vendor_status', vendor_status, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('phone IS NOT NULL OR email IS NOT NULL', name='user_contact_required'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vendor_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('price >= 0', name='service_price_non_negative'),
        sa.CheckConstraint(
            'duration_minutes > 0 AND duration_minutes <= 480', name='service_duration_range'
        ),
        sa.ForeignKeyConstraint(['vendor_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_services_vendor_id', 'services', ['vendor_id'])
    op.create_index('ix_services_name', 'services', ['name'])

    op.create_table(
        'staff',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vendor_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('service_ids', JSON_TYPE, nullable=False),
        sa.Column('schedule', JSON_TYPE, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['vendor_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_staff_vendor_active', 'staff', ['vendor_id', 'is_active'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('vendor_id', sa.Uuid(), nullable=False),
        sa.Column('service_id', sa.Uuid(), nullable=False),
        sa.Column('staff_id', sa.Uuid(), nullable=True),
        sa.Column('staff_preference', staff_preference, nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', booking_status, nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('refund_reference', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.Uuid(), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'duration_minutes > 0 AND duration_minutes <= 480', name='booking_duration_range'
        ),
        sa.CheckConstraint('total_price >= 0', name='booking_price_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vendor_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bookings_customer_id', 'bookings', ['customer_id'])
    op.create_index('ix_bookings_vendor_id', 'bookings', ['vendor_id'])
    # Conflict detection: active bookings of one staff member by start time
    op.create_index('ix_bookings_staff_status_datetime', 'bookings', ['staff_id', 'status', 'scheduled_at'])
    op.create_index('ix_bookings_vendor_datetime', 'bookings', ['vendor_id', 'scheduled_at'])
    op.create_index('ix_bookings_reminders', 'bookings', ['status', 'reminder_sent', 'scheduled_at'])

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=True),
        sa.Column('recipient_id', sa.Uuid(), nullable=True),
        sa.Column('recipient', sa.String(length=255), nullable=True,
                  comment='Email address or phone number the message went to'),
        sa.Column('notification_type', notification_type, nullable=False),
        sa.Column('channel', notification_channel, nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message_text', sa.Text(), nullable=False),
        sa.Column('delivery_status', delivery_status, nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('correlation_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_logs_booking_id', 'notification_logs', ['booking_id'])
    op.create_index('ix_notification_logs_delivery_status', 'notification_logs', ['delivery_status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('notification_logs')
    op.drop_table('bookings')
    op.drop_table('staff')
    op.drop_table('services')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (
        delivery_status,
        notification_channel,
        notification_type,
        payment_status,
        booking_status,
        staff_preference,
        vendor_status,
        user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
