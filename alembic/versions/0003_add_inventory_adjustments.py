"""add inventory adjustment ledger

Revision ID: 0003_add_inventory_adjustments
Revises: 0002_add_bundles
Create Date: 2025-11-20 16:41:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0003_add_inventory_adjustments'
down_revision = '0002_add_bundles'
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'inventory_adjustments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('inventory_id', sa.Integer, sa.ForeignKey('inventory.id', ondelete='CASCADE'), nullable=False),
        sa.Column('delta', sa.Integer, nullable=False),
        sa.Column('quantity_after', sa.Integer, nullable=False),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_inventory_adjustments_inventory_id', 'inventory_adjustments', ['inventory_id'])

def downgrade():
    op.drop_table('inventory_adjustments')
