# 📄 File: tenant_billing/modules/subscription_billing/infrastructure/database/models.py
# 🧭 Purpose (Layman Explanation):
# This file defines how subscriptions, billing history and campaigns are stored in the database,
# including the rules the database itself enforces (a free plan never has an end date).
#
# 🧪 Purpose (Technical Summary):
# SQLAlchemy ORM models mapping the subscription billing domain onto PostgreSQL tables with
# check constraints, indexes for the sweep queries and Numeric money columns.
#
# 🔗 Dependencies:
# - SQLAlchemy ORM
# - tenant_billing.shared.infrastructure.database.connection (declarative Base)
#
# 🔄 Connected Modules / Calls From:
# - subscription_repository_impl.py and campaign_repository_impl.py (CRUD operations)
# - migrations/versions/001_billing_tables.py (schema)

"""
SQLAlchemy Models for Subscription Billing

Models:
- SubscriptionModel: one row per tenant, plan and renewal state
- BillingTransactionModel: append-only billing ledger
- CampaignModel: marketing campaigns (owned by the campaigns subsystem, paused by billing)

All timestamps are stored in UTC.
"""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from tenant_billing.shared.infrastructure.database.connection import Base


# =============================================================================
# SUBSCRIPTION MODEL
# =============================================================================

class SubscriptionModel(Base):
    """
    SQLAlchemy model for tenant subscriptions.
    """
    __tablename__ = "subscriptions"

    id = Column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        nullable=False,
        comment="Unique subscription identifier"
    )
    tenant_id = Column(
        String(64),
        nullable=False,
        unique=True,
        comment="Owning tenant (restaurant); one subscription per tenant"
    )

    # Plan and status
    plan_tier = Column(String(16), nullable=False, default="free", comment="free/tier1/tier2")
    status = Column(String(16), nullable=False, default="active", comment="active/cancelled")

    # Billing window
    start_at = Column(DateTime(timezone=True), nullable=False, comment="Subscription start")
    end_at = Column(DateTime(timezone=True), nullable=True, comment="End of the paid period (null on free)")
    next_billing_at = Column(DateTime(timezone=True), nullable=True, comment="Next charge date")
    price_paid = Column(Numeric(10, 2), nullable=False, default=0, comment="Price of the current period")
    currency = Column(String(3), nullable=False, default="MXN")

    # Payment provider
    gateway_customer_ref = Column(String(128), nullable=True, comment="Payment gateway customer id")

    # Renewal state
    auto_renew = Column(Boolean, nullable=False, default=False)
    renewal_attempts = Column(Integer, nullable=False, default=0)
    last_renewal_attempt_at = Column(DateTime(timezone=True), nullable=True)
    renewal_reminder_sent = Column(Boolean, nullable=False, default=False)
    scheduled_plan_change = Column(String(16), nullable=True, comment="Tier applied when the period ends")
    entitlement_sync_pending = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="Campaign cascade failed and must be re-run"
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("plan_tier IN ('free', 'tier1', 'tier2')", name="ck_subscriptions_plan_tier"),
        CheckConstraint("status IN ('active', 'cancelled')", name="ck_subscriptions_status"),
        CheckConstraint(
            "scheduled_plan_change IS NULL OR scheduled_plan_change IN ('free', 'tier1', 'tier2')",
            name="ck_subscriptions_scheduled_plan_change",
        ),
        CheckConstraint(
            "plan_tier <> 'free' OR (end_at IS NULL AND auto_renew = false)",
            name="ck_subscriptions_free_has_no_period",
        ),
        CheckConstraint("renewal_attempts >= 0", name="ck_subscriptions_renewal_attempts"),
        Index("ix_subscriptions_status_end_at", "status", "end_at"),
    )

    def __repr__(self) -> str:
        return f"<SubscriptionModel(id={self.id}, tenant_id={self.tenant_id}, plan_tier={self.plan_tier})>"


# =============================================================================
# BILLING TRANSACTION MODEL
# =============================================================================

class BillingTransactionModel(Base):
    """
    SQLAlchemy model for the billing ledger. Rows are only ever inserted.
    """
    __tablename__ = "billing_transactions"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4, nullable=False)
    subscription_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("subscriptions.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    type = Column(String(20), nullable=False, comment="payment/renewal/renewal_failed/downgrade")
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="MXN")
    gateway_ref = Column(String(128), nullable=True, comment="Gateway order id")
    status = Column(String(16), nullable=False, comment="completed/failed/pending")
    idempotency_key = Column(String(160), nullable=True, index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('payment', 'renewal', 'renewal_failed', 'downgrade')",
            name="ck_billing_transactions_type",
        ),
        CheckConstraint(
            "status IN ('completed', 'failed', 'pending')",
            name="ck_billing_transactions_status",
        ),
        CheckConstraint("amount >= 0", name="ck_billing_transactions_amount"),
    )

    def __repr__(self) -> str:
        return f"<BillingTransactionModel(id={self.id}, type={self.type}, status={self.status})>"


# =============================================================================
# CAMPAIGN MODEL
# =============================================================================

class CampaignModel(Base):
    """
    SQLAlchemy model for marketing campaigns. Billing only reads them and pauses them.
    """
    __tablename__ = "campaigns"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4, nullable=False)
    tenant_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default="draft")
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'scheduled', 'running', 'paused', 'completed', 'cancelled')",
            name="ck_campaigns_status",
        ),
        Index("ix_campaigns_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<CampaignModel(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"
