"""Create dairy billing tables

Revision ID: 001_billing
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_billing'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create customers, delivery ledger, bills and payments"""

    # ====================
    # CUSTOMERS TABLE
    # ====================
    op.create_table(
        'customers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('pincode', sa.String(10), nullable=True),
        sa.Column('customer_type', sa.String(20), server_default='daily', nullable=False,
                  comment='daily, guest'),
        sa.Column('billing_type', sa.String(20), nullable=True, comment='subscription, per_liter'),
        sa.Column('subscription_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('price_per_liter', sa.Numeric(12, 2), nullable=True),
        sa.Column('balance_due', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('billing_hold', sa.Boolean, server_default='false', nullable=False),
        sa.Column('billing_hold_reason', sa.Text, nullable=True),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_index('ix_customers_phone', 'customers', ['phone'])
    op.create_index('ix_customers_billing_type', 'customers', ['billing_type'])
    op.create_index('ix_customers_is_active', 'customers', ['is_active'])

    # ====================
    # DELIVERY LEDGER
    # ====================
    op.create_table(
        'delivery_records',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('delivery_date', sa.Date, nullable=False),
        sa.Column('status', sa.String(10), nullable=False, comment='present, absent'),
        sa.Column('quantity', sa.Numeric(10, 3), server_default='0', nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('recorded_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('customer_id', 'delivery_date', name='uq_delivery_customer_date'),
    )

    op.create_index('ix_delivery_records_customer_id', 'delivery_records', ['customer_id'])
    op.create_index('ix_delivery_records_delivery_date', 'delivery_records', ['delivery_date'])

    op.create_table(
        'delivery_additional_products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('delivery_id', UUID(as_uuid=True), sa.ForeignKey('delivery_records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('line_number', sa.Integer, server_default='1', nullable=False),
        sa.Column('product_type', sa.String(20), nullable=False,
                  comment='milk, eggs, paneer, ghee, mithai'),
        sa.Column('quantity', sa.Numeric(10, 3), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
    )

    op.create_index('ix_delivery_additional_products_delivery_id', 'delivery_additional_products', ['delivery_id'])

    # ====================
    # BILLS TABLE
    # ====================
    op.create_table(
        'bills',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('invoice_number', sa.String(40), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('customer_name', sa.String(200), nullable=False),
        sa.Column('billing_period', sa.String(7), nullable=False, comment='YYYY-MM'),
        sa.Column('billing_type', sa.String(20), nullable=False),
        sa.Column('price_per_liter', sa.Numeric(12, 2), nullable=True),
        sa.Column('subscription_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_liters', sa.Numeric(10, 3), server_default='0', nullable=False),
        sa.Column('milk_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('additional_products_total', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('delivered_days', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_days', sa.Integer, server_default='0', nullable=False),
        sa.Column('due_date', sa.Date, nullable=False),
        sa.Column('status', sa.String(20), server_default='unpaid', nullable=False,
                  comment='unpaid, paid, overdue'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('customer_id', 'billing_period', name='uq_bill_customer_period'),
        sa.UniqueConstraint('invoice_number', name='uq_bill_invoice_number'),
        sa.CheckConstraint('total_amount >= 0', name='ck_bill_total_non_negative'),
    )

    op.create_index('ix_bills_customer_id', 'bills', ['customer_id'])
    op.create_index('ix_bills_billing_period', 'bills', ['billing_period'])
    op.create_index('ix_bills_status_due', 'bills', ['status', 'due_date'])

    # ====================
    # PAYMENTS TABLE
    # ====================
    op.create_table(
        'bill_payments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('bill_id', UUID(as_uuid=True), sa.ForeignKey('bills.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('sequence', sa.Integer, server_default='1', nullable=False),
        sa.Column('payment_date', sa.Date, nullable=False),
        sa.Column('payment_method', sa.String(20), server_default='cash', nullable=False,
                  comment='cash, online, cheque, bank_transfer'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('recorded_by', sa.String(100), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('bill_id', 'sequence', name='uq_bill_payment_sequence'),
        sa.CheckConstraint('amount > 0', name='ck_bill_payment_positive'),
    )

    op.create_index('ix_bill_payments_bill_id', 'bill_payments', ['bill_id'])
    op.create_index('ix_bill_payments_customer_id', 'bill_payments', ['customer_id'])


def downgrade():
    """Drop billing tables"""
    op.drop_table('bill_payments')
    op.drop_table('bills')
    op.drop_table('delivery_additional_products')
    op.drop_table('delivery_records')
    op.drop_table('customers')
