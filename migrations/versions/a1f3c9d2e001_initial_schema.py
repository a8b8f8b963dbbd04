"""Initial schema

Revision ID: a1f3c9d2e001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1f3c9d2e001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def _store_fk():
    return sa.Column('store_id', sa.Integer(), sa.ForeignKey('stores.id', ondelete='SET NULL'), nullable=True)


def upgrade():
    op.create_table(
        'stores',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('opening_time', sa.String(length=5), nullable=False),
        sa.Column('closing_time', sa.String(length=5), nullable=False),
        sa.Column('is_main_store', sa.Boolean(), nullable=False),
        sa.Column('parent_store_id', sa.Integer(), sa.ForeignKey('stores.id', ondelete='SET NULL'), nullable=True),
        sa.Column('deletion_requested', sa.Boolean(), nullable=False),
        sa.Column('deletion_requested_at', sa.DateTime(), nullable=True),
        sa.Column('deletion_requested_by', sa.String(length=150), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_stores_is_main_store', 'stores', ['is_main_store'])
    op.create_index('ix_stores_parent_store_id', 'stores', ['parent_store_id'])

    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('username', sa.String(length=80), nullable=True),
        sa.Column('email', sa.String(length=150), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('assigned_store_id', sa.Integer(), sa.ForeignKey('stores.id', ondelete='SET NULL'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_assigned_store_id', 'users', ['assigned_store_id'])

    op.create_table(
        'vendors',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('contact_person', sa.String(length=150), nullable=True),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('tax_id', sa.String(length=100), nullable=True),
        sa.Column('payment_terms', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_vendors_store_id', 'vendors', ['store_id'])

    op.create_table(
        'assets',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('unique_id', sa.String(length=20), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('model_number', sa.String(length=150), nullable=True),
        sa.Column('serial_number', sa.String(length=150), nullable=True),
        sa.Column('serial_last_4', sa.String(length=4), nullable=True),
        sa.Column('mac_address', sa.String(length=100), nullable=False),
        sa.Column('ticket_number', sa.String(length=100), nullable=False),
        sa.Column('rfid', sa.String(length=100), nullable=False),
        sa.Column('qr_code', sa.String(length=200), nullable=False),
        sa.Column('manufacturer', sa.String(length=150), nullable=False),
        sa.Column('category', sa.String(length=150), nullable=False),
        sa.Column('product_type', sa.String(length=150), nullable=True),
        sa.Column('product_name', sa.String(length=200), nullable=True),
        _store_fk(),
        sa.Column('location', sa.String(length=200), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('source', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('previous_status', sa.String(length=50), nullable=True),
        sa.Column('condition', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=20), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('assigned_to_external_name', sa.String(length=150), nullable=True),
        sa.Column('assigned_to_external_phone', sa.String(length=50), nullable=True),
        sa.Column('assigned_to_external_note', sa.Text(), nullable=True),
        sa.Column('return_pending', sa.Boolean(), nullable=False),
        sa.Column('return_condition', sa.String(length=30), nullable=True),
        sa.Column('return_requested_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('return_ticket_number', sa.String(length=100), nullable=True),
        sa.Column('return_notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('unique_id')
    )
    for column in (
        'name', 'model_number', 'serial_number', 'serial_last_4', 'category', 'product_type',
        'product_name', 'store_id', 'status', 'state', 'assigned_to_id', 'return_pending',
    ):
        op.create_index(f'ix_assets_{column}', 'assets', [column])
    op.create_index('ix_assets_store_status', 'assets', ['store_id', 'status'])
    op.create_index('ix_assets_store_serial', 'assets', ['store_id', 'serial_number'])
    op.create_index('ix_assets_store_model', 'assets', ['store_id', 'model_number'])

    op.create_table(
        'asset_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), sa.ForeignKey('assets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('ticket_number', sa.String(length=100), nullable=True),
        sa.Column('user', sa.String(length=150), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_asset_history_asset_id', 'asset_history', ['asset_id'])
    op.create_index('ix_asset_history_date', 'asset_history', ['date'])

    op.create_table(
        'asset_categories',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('image', sa.String(length=300), nullable=False),
        _store_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', 'store_id', name='uq_asset_category_name_store')
    )
    op.create_index('ix_asset_categories_store_id', 'asset_categories', ['store_id'])

    op.create_table(
        'asset_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('asset_categories.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'catalog_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('model_number', sa.String(length=150), nullable=False),
        sa.Column('image', sa.String(length=300), nullable=False),
        sa.Column('type_id', sa.Integer(), sa.ForeignKey('asset_types.id', ondelete='CASCADE'), nullable=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('catalog_products.id', ondelete='CASCADE'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'products',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('image', sa.String(length=300), nullable=False),
        sa.Column('model_number', sa.String(length=150), nullable=False),
        _store_fk(),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_store_id', 'products', ['store_id'])
    op.create_index('ix_products_parent_id', 'products', ['parent_id'])

    op.create_table(
        'purchase_orders',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=50), nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id', ondelete='SET NULL'), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=True),
        sa.Column('expected_delivery', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('po_number')
    )
    op.create_index('ix_purchase_orders_vendor_id', 'purchase_orders', ['vendor_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_store_id', 'purchase_orders', ['store_id'])

    op.create_table(
        'stock_requests',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('requester_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_requests_requester_id', 'stock_requests', ['requester_id'])
    op.create_index('ix_stock_requests_store_id', 'stock_requests', ['store_id'])
    op.create_index('ix_stock_requests_store_status', 'stock_requests', ['store_id', 'status'])

    op.create_table(
        'passes',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pass_number', sa.String(length=50), nullable=False),
        sa.Column('pass_type', sa.String(length=20), nullable=False),
        sa.Column('issued_to', sa.String(length=150), nullable=False),
        sa.Column('company', sa.String(length=150), nullable=True),
        sa.Column('purpose', sa.Text(), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('valid_until', sa.Date(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pass_number')
    )
    op.create_index('ix_passes_store_id', 'passes', ['store_id'])

    op.create_table(
        'permits',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('permit_number', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('contractor', sa.String(length=150), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('requested_by_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('permit_number')
    )
    op.create_index('ix_permits_store_id', 'permits', ['store_id'])

    op.create_table(
        'activity_logs',
        *_timestamps(),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user', sa.String(length=150), nullable=True),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        _store_fk(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activity_logs_store_id', 'activity_logs', ['store_id'])


def downgrade():
    for table in (
        'activity_logs',
        'permits',
        'passes',
        'stock_requests',
        'purchase_orders',
        'products',
        'catalog_products',
        'asset_types',
        'asset_categories',
        'asset_history',
        'assets',
        'vendors',
        'users',
        'stores',
    ):
        op.drop_table(table)
