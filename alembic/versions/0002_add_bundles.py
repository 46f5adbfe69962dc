"""add product bundles

Revision ID: 0002_add_bundles
Revises: 0001_init
Create Date: 2025-11-14 10:12:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_add_bundles'
down_revision = '0001_init'
branch_labels = None
depends_on = None

def upgrade():
    op.add_column('products', sa.Column('is_bundle', sa.Boolean(), nullable=False, server_default=sa.text('false')))
    op.add_column('products', sa.Column('bundle_pricing_type', sa.String(length=20), nullable=False, server_default='calculated'))
    op.add_column('products', sa.Column('bundle_discount_percentage', sa.Numeric(5,2), nullable=False, server_default='0'))
    op.create_index('ix_products_is_bundle', 'products', ['is_bundle'])

    op.create_table(
        'product_bundle_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('bundle_product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('component_product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='1'),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.UniqueConstraint('bundle_product_id', 'component_product_id', name='uq_bundle_component'),
        sa.CheckConstraint('quantity > 0', name='ck_bundle_component_quantity_positive')
    )
    op.create_index('ix_product_bundle_items_bundle_product_id', 'product_bundle_items', ['bundle_product_id'])
    op.create_index('ix_product_bundle_items_component_product_id', 'product_bundle_items', ['component_product_id'])

def downgrade():
    op.drop_table('product_bundle_items')
    op.drop_index('ix_products_is_bundle', table_name='products')
    op.drop_column('products', 'bundle_discount_percentage')
    op.drop_column('products', 'bundle_pricing_type')
    op.drop_column('products', 'is_bundle')
