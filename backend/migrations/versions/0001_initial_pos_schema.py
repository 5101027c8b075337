"""Initial POS schema: inventory, ledger, refunds, counters, settings, sessions

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Creates:
1. inventory_items (optimistic version_id)
2. transactions + transaction_lines (frozen sale snapshot)
3. refund_records + refund_lines (append-only)
4. document_sequences (RECEIPT / REFUND_NOTE counters)
5. store_settings (versioned JSON document)
6. session_tokens (hashed bearer tokens)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. INVENTORY
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('material_details', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('qr_code', sa.Text(), nullable=True),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('date_added', sa.DateTime(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_items_quantity_nonneg'),
        sa.CheckConstraint('price_cents >= 0', name='ck_inventory_items_price_nonneg'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index('ix_inventory_items_name', ['item_name'], unique=False)

    # ==========================================================================
    # 2. TRANSACTIONS
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('transaction_id', sa.String(length=64), nullable=False),
        sa.Column('receipt_number', sa.String(length=32), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('amount_tendered_cents', sa.Integer(), nullable=True),
        sa.Column('change_given_cents', sa.Integer(), nullable=True),
        sa.Column('card_details', sa.JSON(), nullable=True),
        sa.Column('momo_details', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='Completed'),
        sa.Column('cashier', sa.String(length=128), nullable=False, server_default='Staff'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('transaction_id'),
        sa.UniqueConstraint('receipt_number', name='uq_transactions_receipt_number'),
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index('ix_transactions_date', ['date'], unique=False)
        batch_op.create_index('ix_transactions_status_date', ['status', 'date'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_payment_method'), ['payment_method'], unique=False)

    op.create_table('transaction_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.transaction_id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id', 'position', name='uq_transaction_lines_position'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('transaction_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_transaction_lines_transaction_id'), ['transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_transaction_lines_item_id'), ['item_id'], unique=False)

    # ==========================================================================
    # 3. REFUNDS
    # ==========================================================================
    op.create_table('refund_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(length=64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('refund_note_number', sa.String(length=32), nullable=False),
        sa.Column('refund_date', sa.DateTime(), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.transaction_id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('refund_note_number', name='uq_refund_records_note_number'),
        sa.UniqueConstraint('transaction_id', 'position', name='uq_refund_records_position'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('refund_records', schema=None) as batch_op:
        batch_op.create_index('ix_refund_records_refund_date', ['refund_date'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_records_transaction_id'), ['transaction_id'], unique=False)

    op.create_table('refund_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('refund_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_refund_lines_quantity_pos'),
        sa.ForeignKeyConstraint(['refund_id'], ['refund_records.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('refund_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_refund_lines_refund_id'), ['refund_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_refund_lines_item_id'), ['item_id'], unique=False)

    # ==========================================================================
    # 4. DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('counter', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_sequences', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_document_sequences_document_type'), ['document_type'], unique=False)

    # ==========================================================================
    # 5. STORE SETTINGS
    # ==========================================================================
    op.create_table('store_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False, server_default='store'),
        sa.Column('schema_version', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_store_settings_key'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 6. SESSION TOKENS
    # ==========================================================================
    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash', name='uq_session_tokens_token_hash'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)


def downgrade():
    op.drop_table('session_tokens')
    op.drop_table('store_settings')
    op.drop_table('document_sequences')
    op.drop_table('refund_lines')
    op.drop_table('refund_records')
    op.drop_table('transaction_lines')
    op.drop_table('transactions')
    op.drop_table('inventory_items')
