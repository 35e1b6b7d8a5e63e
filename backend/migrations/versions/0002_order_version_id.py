"""order version counter

Revision ID: 0002_order_version_id
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00.000000

Adds orders.version_id for optimistic locking, so overlapping stale pickup
sweeps cannot both terminate the same order.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_order_version_id'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('orders') as batch_op:
        batch_op.add_column(sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'))


def downgrade():
    with op.batch_alter_table('orders') as batch_op:
        batch_op.drop_column('version_id')
