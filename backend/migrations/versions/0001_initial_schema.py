"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the order, account and session tables:
- users: customer and kitchen accounts with optional push token
- orders: live orders and their lifecycle timestamps
- order_history / admin_order_history: archive copies of terminated orders
- user_sessions: one active-device record per user
- session_history: logout events, purged after the retention window
- security_logs: append-only suspicious activity records
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('fcm_token', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('picked_up_time', sa.DateTime(), nullable=True),
        sa.Column('terminated_time', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status_picked_up', 'orders', ['status', 'picked_up_time'])

    op.create_table(
        'order_history',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('terminated_time', sa.DateTime(), nullable=True),
        sa.Column('snapshot', sa.JSON(), nullable=False),
        sa.Column('archived_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('user_id', 'order_id'),
    )

    op.create_table(
        'admin_order_history',
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('terminated_time', sa.DateTime(), nullable=True),
        sa.Column('snapshot', sa.JSON(), nullable=False),
        sa.Column('archived_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('order_id'),
    )
    op.create_index('ix_admin_order_history_user_id', 'admin_order_history', ['user_id'])

    op.create_table(
        'user_sessions',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('active_device_id', sa.String(length=255), nullable=True),
        sa.Column('last_login_time', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'session_history',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('logout_reason', sa.String(length=255), nullable=True),
        sa.Column('fcm_token', sa.String(length=512), nullable=True),
        sa.Column('logout_time', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_session_history_user_id', 'session_history', ['user_id'])
    op.create_index('ix_session_history_logout_time', 'session_history', ['logout_time'])

    op.create_table(
        'security_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('previous_device', sa.String(length=255), nullable=True),
        sa.Column('new_device', sa.String(length=255), nullable=True),
        sa.Column('time_difference_hours', sa.Float(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_logs_user_id', 'security_logs', ['user_id'])
    op.create_index('ix_security_logs_user_type', 'security_logs', ['user_id', 'type'])
    op.create_index('ix_security_logs_timestamp', 'security_logs', ['timestamp'])


def downgrade():
    op.drop_table('security_logs')
    op.drop_table('session_history')
    op.drop_table('user_sessions')
    op.drop_table('admin_order_history')
    op.drop_table('order_history')
    op.drop_table('orders')
    op.drop_table('users')
