"""Initial sync schema

Revision ID: 0001_initial_sync_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from erp_sync_core.db.db_base import JSON, EncryptedBinary


# revision identifiers, used by Alembic.
revision: str = '0001_initial_sync_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Enable pgcrypto and create credential, cursor, log and synced record tables."""
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    op.create_table(
        'integration_credentials',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('integration', sa.String(100), nullable=False),
        sa.Column('access_token', EncryptedBinary(), nullable=False),
        sa.Column('refresh_token', EncryptedBinary(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('token_type', sa.String(50), nullable=False),
        sa.Column('scope', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_integration_credentials_integration', 'integration_credentials', ['integration'])
    op.create_index(
        'ix_integration_credentials_one_active',
        'integration_credentials',
        ['integration'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )

    op.create_table(
        'sync_cursors',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('integration', sa.String(100), nullable=False),
        sa.Column('object_type', sa.String(50), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('integration', 'object_type', name='uq_sync_cursor_integration_type'),
    )

    op.create_table(
        'sync_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('integration', sa.String(100), nullable=False),
        sa.Column('trigger', sa.String(20), nullable=False),
        sa.Column('object_type', sa.String(50), nullable=False),
        sa.Column('external_id', sa.String(100), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('payload', JSON(), nullable=True),
        sa.Column('correlation_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_sync_log_type_created', 'sync_log', ['object_type', 'created_at'])
    op.create_index('ix_sync_log_external_id', 'sync_log', ['external_id'])

    op.create_table(
        'synced_orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('external_id', sa.String(100), nullable=False, unique=True),
        sa.Column('number', sa.String(50), nullable=True),
        sa.Column('store_order_number', sa.String(100), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=True),
        sa.Column('ship_date', sa.Date(), nullable=True),
        sa.Column('contact_external_id', sa.String(100), nullable=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_document', sa.String(50), nullable=True),
        sa.Column('marketplace', sa.String(100), nullable=True),
        sa.Column('total_products', sa.Numeric(14, 2), nullable=False),
        sa.Column('discount_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('freight_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('other_expenses', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_method', sa.String(255), nullable=True),
        sa.Column('status_id', sa.Integer(), nullable=True),
        sa.Column('status_name', sa.String(100), nullable=True),
        sa.Column('seller_external_id', sa.String(100), nullable=True),
        sa.Column('intermediary_cnpj', sa.String(20), nullable=True),
        sa.Column('intermediary_user', sa.String(255), nullable=True),
        sa.Column('commission_fee', sa.Numeric(14, 2), nullable=True),
        sa.Column('marketplace_freight_cost', sa.Numeric(14, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('shipping', JSON(), nullable=True),
        sa.Column('invoice_external_id', sa.String(100), nullable=True),
        sa.Column('raw_data', JSON(), nullable=False),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_synced_orders_store_order_number', 'synced_orders', ['store_order_number'])

    op.create_table(
        'synced_order_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'order_id',
            sa.String(36),
            sa.ForeignKey('synced_orders.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_external_id', sa.String(100), nullable=True),
        sa.Column('product_code', sa.String(100), nullable=True),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Numeric(14, 4), nullable=False),
        sa.Column('unit_price', sa.Numeric(14, 4), nullable=False),
        sa.Column('discount', sa.Numeric(14, 2), nullable=False),
        sa.Column('total', sa.Numeric(14, 2), nullable=False),
    )
    op.create_index('ix_synced_order_items_order_id', 'synced_order_items', ['order_id'])

    op.create_table(
        'synced_invoices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('external_id', sa.String(100), nullable=False, unique=True),
        sa.Column('number', sa.Integer(), nullable=True),
        sa.Column('series', sa.String(10), nullable=True),
        sa.Column('access_key', sa.String(60), nullable=True),
        sa.Column('invoice_type', sa.Integer(), nullable=True),
        sa.Column('purpose', sa.Integer(), nullable=True),
        sa.Column('status', sa.Integer(), nullable=True),
        sa.Column('status_name', sa.String(100), nullable=True),
        sa.Column('issued_on', sa.Date(), nullable=True),
        sa.Column('operation_date', sa.Date(), nullable=True),
        sa.Column('contact_external_id', sa.String(100), nullable=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_document', sa.String(50), nullable=True),
        sa.Column('contact_address', JSON(), nullable=True),
        sa.Column('freight_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('xml_url', sa.String(1000), nullable=True),
        sa.Column('danfe_url', sa.String(1000), nullable=True),
        sa.Column('pdf_url', sa.String(1000), nullable=True),
        sa.Column('store_order_number', sa.String(100), nullable=True),
        sa.Column(
            'order_id',
            sa.String(36),
            sa.ForeignKey('synced_orders.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('raw_data', JSON(), nullable=False),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_synced_invoices_store_order_number', 'synced_invoices', ['store_order_number'])

    op.create_table(
        'synced_invoice_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'invoice_id',
            sa.String(36),
            sa.ForeignKey('synced_invoices.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(100), nullable=True),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('quantity', sa.Numeric(14, 4), nullable=False),
        sa.Column('unit_price', sa.Numeric(14, 4), nullable=False),
        sa.Column('total', sa.Numeric(14, 2), nullable=False),
        sa.Column('item_type', sa.String(10), nullable=True),
        sa.Column('ncm', sa.String(20), nullable=True),
        sa.Column('cfop', sa.String(10), nullable=True),
        sa.Column('origin', sa.Integer(), nullable=True),
        sa.Column('gtin', sa.String(20), nullable=True),
        sa.Column('taxes', JSON(), nullable=True),
    )
    op.create_index('ix_synced_invoice_items_invoice_id', 'synced_invoice_items', ['invoice_id'])


def downgrade() -> None:
    """Drop all sync tables (pgcrypto is left installed)."""
    op.drop_table('synced_invoice_items')
    op.drop_table('synced_invoices')
    op.drop_table('synced_order_items')
    op.drop_table('synced_orders')
    op.drop_table('sync_log')
    op.drop_table('sync_cursors')
    op.drop_table('integration_credentials')
