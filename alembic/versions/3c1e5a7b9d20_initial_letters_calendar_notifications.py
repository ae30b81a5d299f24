"""initial letters, calendar events and notifications

Revision ID: 3c1e5a7b9d20
Revises:
Create Date: 2026-09-28 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e5a7b9d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LETTER_NATURES = ('BIASA', 'TERBATAS', 'RAHASIA', 'SANGAT_RAHASIA', 'PENTING')
DISPOSITION_TARGETS = (
    'UMPEG', 'PERENCANAAN', 'KAUR_KEUANGAN', 'KABID',
    'BIDANG1', 'BIDANG2', 'BIDANG3', 'BIDANG4', 'BIDANG5',
)
EVENT_TYPES = ('MEETING', 'APPOINTMENT', 'DEADLINE', 'OTHER')
NOTIFICATION_TYPES = ('INFO', 'WARNING', 'SUCCESS', 'ERROR')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('settings',
    sa.Column('key', sa.Text(), nullable=False),
    sa.Column('value', sa.Text(), nullable=False),
    sa.PrimaryKeyConstraint('key')
    )
    op.create_table('incoming_letters',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('letter_number', sa.Text(), nullable=False),
    sa.Column('letter_date', sa.Date(), nullable=True),
    sa.Column('received_date', sa.Date(), nullable=False),
    sa.Column('letter_nature', sa.Enum(*LETTER_NATURES, name='letter_nature', native_enum=False, create_constraint=True), nullable=False),
    sa.Column('subject', sa.Text(), nullable=False),
    sa.Column('sender', sa.Text(), nullable=False),
    sa.Column('recipient', sa.Text(), nullable=False),
    sa.Column('processor', sa.Text(), nullable=True),
    sa.Column('note', sa.Text(), nullable=True),
    sa.Column('disposition_target', sa.Enum(*DISPOSITION_TARGETS, name='disposition_target', native_enum=False, create_constraint=True), nullable=True),
    sa.Column('is_invitation', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('event_date', sa.Date(), nullable=True),
    sa.Column('event_time', sa.Text(), nullable=True),
    sa.Column('event_location', sa.Text(), nullable=True),
    sa.Column('event_notes', sa.Text(), nullable=True),
    sa.Column('needs_follow_up', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('follow_up_deadline', sa.Date(), nullable=True),
    sa.Column('overdue_notified_at', sa.Text(), nullable=True),
    sa.Column('user_id', sa.Text(), nullable=False),
    sa.Column('created_at', sa.Text(), nullable=False),
    sa.Column('updated_at', sa.Text(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_incoming_letters_letter_number'), 'incoming_letters', ['letter_number'], unique=True)
    op.create_index(op.f('ix_incoming_letters_user_id'), 'incoming_letters', ['user_id'], unique=False)
    op.create_index('ix_incoming_letters_follow_up', 'incoming_letters', ['needs_follow_up', 'follow_up_deadline'], unique=False)
    op.create_table('outgoing_letters',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('letter_number', sa.Text(), nullable=False),
    sa.Column('letter_date', sa.Date(), nullable=False),
    sa.Column('created_date', sa.Date(), nullable=False),
    sa.Column('letter_nature', sa.Enum(*LETTER_NATURES, name='letter_nature', native_enum=False, create_constraint=True), nullable=False),
    sa.Column('subject', sa.Text(), nullable=False),
    sa.Column('sender', sa.Text(), nullable=False),
    sa.Column('recipient', sa.Text(), nullable=False),
    sa.Column('processor', sa.Text(), nullable=True),
    sa.Column('note', sa.Text(), nullable=True),
    sa.Column('execution_date', sa.Date(), nullable=True),
    sa.Column('is_invitation', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('event_date', sa.Date(), nullable=True),
    sa.Column('event_time', sa.Text(), nullable=True),
    sa.Column('event_location', sa.Text(), nullable=True),
    sa.Column('event_notes', sa.Text(), nullable=True),
    sa.Column('user_id', sa.Text(), nullable=False),
    sa.Column('created_at', sa.Text(), nullable=False),
    sa.Column('updated_at', sa.Text(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_outgoing_letters_letter_number'), 'outgoing_letters', ['letter_number'], unique=True)
    op.create_index(op.f('ix_outgoing_letters_user_id'), 'outgoing_letters', ['user_id'], unique=False)
    op.create_table('calendar_events',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.Text(), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('time', sa.Text(), nullable=True),
    sa.Column('location', sa.Text(), nullable=True),
    sa.Column('type', sa.Enum(*EVENT_TYPES, name='event_type', native_enum=False, create_constraint=True), nullable=False),
    sa.Column('user_id', sa.Text(), nullable=False),
    sa.Column('incoming_letter_id', sa.Integer(), nullable=True),
    sa.Column('outgoing_letter_id', sa.Integer(), nullable=True),
    sa.Column('notified_7_days', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('notified_3_days', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('notified_1_day', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('created_at', sa.Text(), nullable=False),
    sa.Column('updated_at', sa.Text(), nullable=False),
    sa.CheckConstraint('incoming_letter_id IS NULL OR outgoing_letter_id IS NULL', name='ck_calendar_events_single_letter_link'),
    sa.ForeignKeyConstraint(['incoming_letter_id'], ['incoming_letters.id'], ),
    sa.ForeignKeyConstraint(['outgoing_letter_id'], ['outgoing_letters.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_calendar_events_date', 'calendar_events', ['date'], unique=False)
    op.create_index(op.f('ix_calendar_events_user_id'), 'calendar_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_calendar_events_incoming_letter_id'), 'calendar_events', ['incoming_letter_id'], unique=False)
    op.create_index(op.f('ix_calendar_events_outgoing_letter_id'), 'calendar_events', ['outgoing_letter_id'], unique=False)
    op.create_table('notifications',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.Text(), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('type', sa.Enum(*NOTIFICATION_TYPES, name='notification_type', native_enum=False, create_constraint=True), nullable=False),
    sa.Column('user_id', sa.Text(), nullable=True),
    sa.Column('calendar_event_id', sa.Integer(), nullable=True),
    sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('created_at', sa.Text(), nullable=False),
    sa.ForeignKeyConstraint(['calendar_event_id'], ['calendar_events.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_calendar_event_id'), 'notifications', ['calendar_event_id'], unique=False)
    op.create_index('ix_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_notifications_user_id_is_read', table_name='notifications')
    op.drop_index(op.f('ix_notifications_calendar_event_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_calendar_events_outgoing_letter_id'), table_name='calendar_events')
    op.drop_index(op.f('ix_calendar_events_incoming_letter_id'), table_name='calendar_events')
    op.drop_index(op.f('ix_calendar_events_user_id'), table_name='calendar_events')
    op.drop_index('ix_calendar_events_date', table_name='calendar_events')
    op.drop_table('calendar_events')
    op.drop_index(op.f('ix_outgoing_letters_user_id'), table_name='outgoing_letters')
    op.drop_index(op.f('ix_outgoing_letters_letter_number'), table_name='outgoing_letters')
    op.drop_table('outgoing_letters')
    op.drop_index('ix_incoming_letters_follow_up', table_name='incoming_letters')
    op.drop_index(op.f('ix_incoming_letters_user_id'), table_name='incoming_letters')
    op.drop_index(op.f('ix_incoming_letters_letter_number'), table_name='incoming_letters')
    op.drop_table('incoming_letters')
    op.drop_table('settings')
