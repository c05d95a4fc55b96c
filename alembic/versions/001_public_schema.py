"""Shared schema: tenants, logins, plans, subscription history, payments

Revision ID: 001_public_schema
Revises: 
Create Date: 2026-10-18

Tenant schemas are not managed here; they are created from
TenantBase.metadata when a business registers.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


revision: str = '001_public_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tenants table
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_name', sa.String(255), nullable=False),
        sa.Column('tenant_schema', sa.String(63), nullable=False),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('business_email', sa.String(255), nullable=False),
        sa.Column('business_phone', sa.String(20), nullable=True),
        sa.Column('business_address', sa.Text(), nullable=True),
        sa.Column('subscription_status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('subscription_plan', sa.String(50), nullable=False, server_default='trial'),
        sa.Column('is_trial', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('grace_period_days', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('monthly_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('mpesa_till_number', sa.String(20), nullable=True),
        sa.Column('mpesa_paybill', sa.String(20), nullable=True),
        sa.Column('mpesa_account_number', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_tenants_tenant_schema', 'tenants', ['tenant_schema'], unique=True)
    op.create_index('ix_tenants_business_email', 'tenants', ['business_email'], unique=True)

    # Login identities
    op.create_table(
        'tenant_users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='cashier'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('tenant_id', 'username', name='uq_tenant_users_tenant_username'),
    )
    op.create_index('ix_tenant_users_tenant_id', 'tenant_users', ['tenant_id'])
    op.create_index('ix_tenant_users_username', 'tenant_users', ['username'])

    # Subscription plans
    plans = op.create_table(
        'subscription_plans',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('plan_name', sa.String(50), nullable=False, unique=True),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('price_monthly', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('max_users', sa.Integer(), nullable=True),
        sa.Column('max_products', sa.Integer(), nullable=True),
        sa.Column('max_transactions_per_month', sa.Integer(), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'subscription_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('previous_plan', sa.String(50), nullable=True),
        sa.Column('new_plan', sa.String(50), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.String(100), nullable=False, server_default='system'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_subscription_history_tenant_id', 'subscription_history', ['tenant_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False, server_default='mpesa'),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='KES'),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('subscription_period', sa.String(50), nullable=False),
        sa.Column('subscription_months', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('checkout_request_id', sa.String(100), nullable=True),
        sa.Column('merchant_request_id', sa.String(100), nullable=True),
        sa.Column('transaction_id', sa.String(50), nullable=True),
        sa.Column('result_code', sa.String(10), nullable=True),
        sa.Column('result_desc', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_payments_tenant_id', 'payments', ['tenant_id'])
    op.create_index('ix_payments_checkout_request_id', 'payments', ['checkout_request_id'])

    op.bulk_insert(
        plans,
        [
            {
                'plan_name': 'trial', 'display_name': 'Free Trial', 'price_monthly': 0,
                'max_users': 2, 'max_products': 100, 'max_transactions_per_month': 500,
                'features': ['Point of sale', 'Inventory', 'Basic reports'], 'is_active': True,
            },
            {
                'plan_name': 'basic', 'display_name': 'Basic', 'price_monthly': 1500,
                'max_users': 3, 'max_products': 1000, 'max_transactions_per_month': 5000,
                'features': ['Point of sale', 'Inventory', 'Customers', 'Basic reports'], 'is_active': True,
            },
            {
                'plan_name': 'premium', 'display_name': 'Premium', 'price_monthly': 3000,
                'max_users': 10, 'max_products': 10000, 'max_transactions_per_month': None,
                'features': ['Everything in Basic', 'Suppliers and purchases', 'Expenses', 'Advanced reports'],
                'is_active': True,
            },
            {
                'plan_name': 'enterprise', 'display_name': 'Enterprise', 'price_monthly': 6000,
                'max_users': None, 'max_products': None, 'max_transactions_per_month': None,
                'features': ['Everything in Premium', 'Unlimited users', 'Priority support'],
                'is_active': True,
            },
        ],
    )


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('subscription_history')
    op.drop_table('subscription_plans')
    op.drop_table('tenant_users')
    op.drop_table('tenants')
