"""initial_schema

Creates the marketplace tables: profiles, catalog, bookings with their
milestone/task hierarchy, billing, notifications and the audit trail.

Revision ID: 3c7d1e0a9b42
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c7d1e0a9b42'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('email', sa.String(200), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(200), nullable=False),
        sa.Column('full_name', sa.String(300)),
        sa.Column('role', sa.String(20), nullable=False, server_default='client'),
        sa.Column('company_name', sa.String(200)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime()),
        *_timestamps(),
    )

    op.create_table(
        'services',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('provider_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('approval_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('base_price', sa.Numeric(12, 3), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='OMR'),
        sa.Column('estimated_duration', sa.String(100)),
        sa.Column('location', sa.String(200)),
        sa.Column('tags', sa.JSON()),
        sa.Column('requirements', sa.Text()),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_number', sa.String(30), unique=True),
        sa.Column('title', sa.String(300)),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('provider_id', sa.String(36), sa.ForeignKey('profiles.id')),
        sa.Column('service_id', sa.String(36), sa.ForeignKey('services.id')),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('project_progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('service_type', sa.String(50)),
        sa.Column('start_time', sa.DateTime()),
        sa.Column('end_time', sa.DateTime()),
        sa.Column('total_cost', sa.Numeric(12, 3)),
        sa.Column('currency', sa.String(3), nullable=False, server_default='OMR'),
        *_timestamps(),
    )

    op.create_table(
        'milestones',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('booking_id', sa.String(36),
                  sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='normal'),
        sa.Column('progress_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weight', sa.Numeric(5, 2), nullable=False, server_default='1'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('editable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_date', sa.DateTime()),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('estimated_hours', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('actual_hours', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('completed_at', sa.DateTime()),
        *_timestamps(),
    )
    op.create_index('ix_milestones_booking_id', 'milestones', ['booking_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('milestone_id', sa.String(36),
                  sa.ForeignKey('milestones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='normal'),
        sa.Column('progress_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('estimated_hours', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('actual_hours', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('editable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('profiles.id')),
        *_timestamps(),
    )
    op.create_index('ix_tasks_milestone_id', 'tasks', ['milestone_id'])

    op.create_table(
        'milestone_approvals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('milestone_id', sa.String(36),
                  sa.ForeignKey('milestones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('comment', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'milestone_comments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('milestone_id', sa.String(36),
                  sa.ForeignKey('milestones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('milestone_comments.id')),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('comment_type', sa.String(20), nullable=False, server_default='general'),
        *_timestamps(),
    )

    op.create_table(
        'invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('invoice_number', sa.String(30), nullable=False, unique=True),
        sa.Column('booking_id', sa.String(36), sa.ForeignKey('bookings.id'),
                  nullable=False, unique=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('provider_id', sa.String(36), sa.ForeignKey('profiles.id')),
        sa.Column('subtotal', sa.Numeric(12, 3), nullable=False),
        sa.Column('vat_rate', sa.Numeric(5, 4), nullable=False),
        sa.Column('vat_amount', sa.Numeric(12, 3), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 3), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='OMR'),
        sa.Column('status', sa.String(20), nullable=False, server_default='issued'),
        sa.Column('issued_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('paid_at', sa.DateTime()),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('data', sa.JSON()),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('table_name', sa.String(100), nullable=False),
        sa.Column('record_id', sa.String(100)),
        sa.Column('new_values', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_table('invoices')
    op.drop_table('milestone_comments')
    op.drop_table('milestone_approvals')
    op.drop_index('ix_tasks_milestone_id', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('ix_milestones_booking_id', table_name='milestones')
    op.drop_table('milestones')
    op.drop_table('bookings')
    op.drop_table('services')
    op.drop_table('profiles')
