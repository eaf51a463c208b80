# 📄 File: tenant_billing/modules/subscription_billing/domain/events/billing_events.py
# 🧭 Purpose (Layman Explanation):
# The announcements the billing engine makes: "your plan renews soon", "your renewal went through",
# "your payment failed", "you were moved to the free plan", "your plan changed".
# 🧪 Purpose (Technical Summary):
# Immutable pydantic domain events for the subscription lifecycle, handed to the notification port.
# 🔗 Dependencies:
# pydantic, decimal, datetime, tenant_billing.shared.events.base
# 🔄 Connected Modules / Calls From:
# renewal_engine.py (publishing), publisher.py (delivery), notification system

from datetime import datetime
from decimal import Decimal
from typing import Optional

from tenant_billing.shared.events.base import DomainEvent


class RenewalReminderDue(DomainEvent):
    """
    Fired a few days before an auto-renewing paid plan is charged.

    Triggers:
    - Renewal reminder email / WhatsApp message
    """
    event_type: str = "subscription.renewal_reminder_due"

    subscription_id: str
    tenant_id: str
    plan_tier: str
    amount: Decimal
    currency: str
    renews_at: datetime


class RenewalSucceeded(DomainEvent):
    """Fired after a renewal charge completed and the period was extended."""
    event_type: str = "subscription.renewal_succeeded"

    subscription_id: str
    tenant_id: str
    plan_tier: str
    amount: Decimal
    currency: str
    gateway_ref: Optional[str] = None
    new_end_at: datetime


class RenewalPaymentFailed(DomainEvent):
    """Fired when a renewal or scheduled-change charge fails."""
    event_type: str = "subscription.renewal_payment_failed"

    subscription_id: str
    tenant_id: str
    plan_tier: str
    amount: Decimal
    currency: str
    error_message: str
    renewal_attempts: int


class SubscriptionDegraded(DomainEvent):
    """
    Fired when a tenant is forced onto the free tier.

    Triggers:
    - "Your plan was downgraded" notification
    """
    event_type: str = "subscription.degraded"

    subscription_id: str
    tenant_id: str
    previous_tier: str
    reason: str
    campaigns_paused: int = 0


class PlanChangeApplied(DomainEvent):
    """Fired when a scheduled plan change takes effect."""
    event_type: str = "subscription.plan_change_applied"

    subscription_id: str
    tenant_id: str
    previous_tier: str
    new_tier: str
    amount: Decimal
    new_end_at: Optional[datetime] = None
