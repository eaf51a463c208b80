"""Create subscription billing tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 06:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create subscription billing tables"""

    # 1. Create subscriptions table
    op.create_table('subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('plan_tier', sa.String(16), nullable=False, server_default='free'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_billing_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('price_paid', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='MXN'),
        sa.Column('gateway_customer_ref', sa.String(128), nullable=True),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('renewal_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_renewal_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('renewal_reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scheduled_plan_change', sa.String(16), nullable=True),
        sa.Column('entitlement_sync_pending', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', name='uq_subscriptions_tenant_id'),
        sa.CheckConstraint("plan_tier IN ('free', 'tier1', 'tier2')", name='ck_subscriptions_plan_tier'),
        sa.CheckConstraint("status IN ('active', 'cancelled')", name='ck_subscriptions_status'),
        sa.CheckConstraint(
            "scheduled_plan_change IS NULL OR scheduled_plan_change IN ('free', 'tier1', 'tier2')",
            name='ck_subscriptions_scheduled_plan_change',
        ),
        sa.CheckConstraint(
            "plan_tier <> 'free' OR (end_at IS NULL AND auto_renew = false)",
            name='ck_subscriptions_free_has_no_period',
        ),
        sa.CheckConstraint('renewal_attempts >= 0', name='ck_subscriptions_renewal_attempts'),
    )

    op.create_index('ix_subscriptions_status_end_at', 'subscriptions', ['status', 'end_at'])

    # 2. Create billing_transactions table
    op.create_table('billing_transactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('subscription_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='MXN'),
        sa.Column('gateway_ref', sa.String(128), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('idempotency_key', sa.String(160), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ondelete='RESTRICT'),
        sa.CheckConstraint(
            "type IN ('payment', 'renewal', 'renewal_failed', 'downgrade')",
            name='ck_billing_transactions_type',
        ),
        sa.CheckConstraint(
            "status IN ('completed', 'failed', 'pending')",
            name='ck_billing_transactions_status',
        ),
        sa.CheckConstraint('amount >= 0', name='ck_billing_transactions_amount'),
    )

    op.create_index('ix_billing_transactions_subscription_id', 'billing_transactions', ['subscription_id'])
    op.create_index('ix_billing_transactions_idempotency_key', 'billing_transactions', ['idempotency_key'])

    # 3. Create campaigns table
    op.create_table('campaigns',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('draft', 'scheduled', 'running', 'paused', 'completed', 'cancelled')",
            name='ck_campaigns_status',
        ),
    )

    op.create_index('ix_campaigns_tenant_status', 'campaigns', ['tenant_id', 'status'])


def downgrade() -> None:
    """Drop subscription billing tables"""
    op.drop_index('ix_campaigns_tenant_status', table_name='campaigns')
    op.drop_table('campaigns')

    op.drop_index('ix_billing_transactions_idempotency_key', table_name='billing_transactions')
    op.drop_index('ix_billing_transactions_subscription_id', table_name='billing_transactions')
    op.drop_table('billing_transactions')

    op.drop_index('ix_subscriptions_status_end_at', table_name='subscriptions')
    op.drop_table('subscriptions')
