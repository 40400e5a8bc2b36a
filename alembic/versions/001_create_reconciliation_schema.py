"""Create purchase order, goods receipt and vendor payment tables.

Revision ID: 001_reconciliation
Revises:
Create Date: 2026-10-19

Receipt and payment tables are append-only ledgers; derived statuses
(line_status, pending_qty, payment_status) are caches recomputed on write.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_reconciliation'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create reconciliation tables."""

    # ==================== purchase_orders ====================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('po_number', sa.String(50), nullable=False, unique=True),
        sa.Column('vendor_id', sa.Uuid, nullable=False),
        sa.Column('dc_id', sa.Uuid, nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='DRAFT'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='MEDIUM'),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(50), nullable=False, server_default='ONE_TIME'),
        sa.Column('credit_period_days', sa.Integer, nullable=True),
        sa.Column('payment_due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_status', sa.String(50), nullable=False, server_default='UNPAID'),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('created_by', sa.Uuid, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_purchase_orders_po_number', 'purchase_orders', ['po_number'])
    op.create_index('ix_purchase_orders_vendor_id', 'purchase_orders', ['vendor_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_po_dc_status', 'purchase_orders', ['dc_id', 'status'])

    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('purchase_order_id', sa.Uuid, nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('unit_price', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])

    op.create_table(
        'purchase_order_sku_matrix',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('po_item_id', sa.Uuid, nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['po_item_id'], ['purchase_order_items.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('po_item_id', 'sku', name='uq_po_sku_matrix_item_sku'),
    )
    op.create_index('ix_purchase_order_sku_matrix_po_item_id', 'purchase_order_sku_matrix', ['po_item_id'])

    # ==================== goods receipt ====================
    op.create_table(
        'goods_receipt_notes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('purchase_order_id', sa.Uuid, nullable=False),
        sa.Column('sequence_no', sa.Integer, nullable=False),
        sa.Column('grn_number', sa.String(80), nullable=False, unique=True),
        sa.Column('dc_id', sa.Uuid, nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='partial'),
        sa.Column('close_reason', sa.Text, nullable=True),
        sa.Column('approved_by', sa.Uuid, nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('created_by', sa.Uuid, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('purchase_order_id', 'sequence_no', name='uq_grn_po_sequence'),
    )
    op.create_index('ix_goods_receipt_notes_purchase_order_id', 'goods_receipt_notes', ['purchase_order_id'])

    op.create_table(
        'grn_lines',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('grn_id', sa.Uuid, nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('ean', sa.String(50), nullable=True),
        sa.Column('ordered_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('received_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('rejected_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('qc_pass_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('qc_fail_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('held_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('rtv_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('pending_qty', sa.Integer, nullable=False, server_default='0'),
        sa.Column('line_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('variance_reason', sa.String(20), nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['grn_id'], ['goods_receipt_notes.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_grn_lines_grn_id', 'grn_lines', ['grn_id'])
    op.create_index('ix_grn_lines_sku', 'grn_lines', ['sku'])
    op.create_index('ix_grn_lines_grn_sku', 'grn_lines', ['grn_id', 'sku'])

    op.create_table(
        'grn_batches',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('grn_line_id', sa.Uuid, nullable=False),
        sa.Column('batch_no', sa.String(100), nullable=False),
        sa.Column('manufacture_date', sa.Date, nullable=True),
        sa.Column('expiry_date', sa.Date, nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['grn_line_id'], ['grn_lines.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_grn_batches_grn_line_id', 'grn_batches', ['grn_line_id'])

    op.create_table(
        'grn_photos',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('grn_id', sa.Uuid, nullable=False),
        sa.Column('purchase_order_id', sa.Uuid, nullable=False),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('url', sa.String(500), nullable=False),
        sa.Column('reason', sa.String(100), nullable=False, server_default='sku-level-photo'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['grn_id'], ['goods_receipt_notes.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_grn_photos_grn_id', 'grn_photos', ['grn_id'])

    # ==================== vendor payments ====================
    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('purchase_order_id', sa.Uuid, nullable=False),
        sa.Column('vendor_id', sa.Uuid, nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_mode', sa.String(30), nullable=False, server_default='BANK_TRANSFER'),
        sa.Column('status', sa.String(20), nullable=False, server_default='SUCCESS'),
        sa.Column('utr_number', sa.String(100), nullable=True),
        sa.Column('receipt_url', sa.String(500), nullable=True),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('created_by', sa.Uuid, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_payment_transactions_vendor_id', 'payment_transactions', ['vendor_id'])
    op.create_index('ix_payment_txn_po_created', 'payment_transactions', ['purchase_order_id', 'created_at'])

    op.create_table(
        'credit_notes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('credit_note_number', sa.String(80), nullable=False, unique=True),
        sa.Column('purchase_order_id', sa.Uuid, nullable=True),
        sa.Column('grn_id', sa.Uuid, nullable=True),
        sa.Column('payment_transaction_id', sa.Uuid, nullable=True),
        sa.Column('vendor_id', sa.Uuid, nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('reason', sa.Text, nullable=False),
        sa.Column('source', sa.String(30), nullable=False, server_default='MANUAL'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('created_by', sa.Uuid, nullable=True),
        sa.Column('approved_by', sa.Uuid, nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_comments', sa.Text, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['grn_id'], ['goods_receipt_notes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['payment_transaction_id'], ['payment_transactions.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_credit_notes_credit_note_number', 'credit_notes', ['credit_note_number'])
    op.create_index('ix_credit_notes_purchase_order_id', 'credit_notes', ['purchase_order_id'])
    op.create_index('ix_credit_notes_vendor_id', 'credit_notes', ['vendor_id'])
    op.create_index('ix_credit_notes_status', 'credit_notes', ['status'])


def downgrade() -> None:
    """Drop reconciliation tables."""
    op.drop_table('credit_notes')
    op.drop_table('payment_transactions')
    op.drop_table('grn_photos')
    op.drop_table('grn_batches')
    op.drop_table('grn_lines')
    op.drop_table('goods_receipt_notes')
    op.drop_table('purchase_order_sku_matrix')
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
