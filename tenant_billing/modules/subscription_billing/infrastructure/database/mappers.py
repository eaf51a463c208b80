# 📄 File: tenant_billing/modules/subscription_billing/infrastructure/database/mappers.py
# 🧭 Purpose (Layman Explanation):
# Translates between how records look in the database and how the billing rules see them.
# 🧪 Purpose (Technical Summary):
# Row <-> domain model conversion helpers: UUID parsing, UTC normalization of timestamps
# (SQLite hands back naive datetimes) and enum value handling.
# 🔗 Dependencies:
# uuid, datetime, ORM models, domain models
# 🔄 Connected Modules / Calls From:
# subscription_repository_impl.py, campaign_repository_impl.py

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from ...domain.models.campaign import Campaign
from ...domain.models.subscription import Subscription
from ...domain.models.transaction import Transaction
from .models import BillingTransactionModel, CampaignModel, SubscriptionModel


def parse_uuid(value) -> Optional[UUID]:
    """UUID from str/UUID, or None when value is not a valid UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enum_value(value):
    return getattr(value, "value", value)


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

def subscription_to_domain(row: SubscriptionModel) -> Subscription:
    return Subscription(
        id=str(row.id),
        tenant_id=row.tenant_id,
        plan_tier=row.plan_tier,
        status=row.status,
        start_at=as_utc(row.start_at),
        end_at=as_utc(row.end_at),
        next_billing_at=as_utc(row.next_billing_at),
        price_paid=row.price_paid,
        currency=row.currency,
        gateway_customer_ref=row.gateway_customer_ref,
        auto_renew=row.auto_renew,
        renewal_attempts=row.renewal_attempts,
        last_renewal_attempt_at=as_utc(row.last_renewal_attempt_at),
        renewal_reminder_sent=row.renewal_reminder_sent,
        scheduled_plan_change=row.scheduled_plan_change,
        entitlement_sync_pending=row.entitlement_sync_pending,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def apply_subscription_to_row(subscription: Subscription, row: SubscriptionModel) -> SubscriptionModel:
    """Copy every mutable field of the domain snapshot onto the row."""
    row.tenant_id = subscription.tenant_id
    row.plan_tier = _enum_value(subscription.plan_tier)
    row.status = _enum_value(subscription.status)
    row.start_at = as_utc(subscription.start_at)
    row.end_at = as_utc(subscription.end_at)
    row.next_billing_at = as_utc(subscription.next_billing_at)
    row.price_paid = subscription.price_paid
    row.currency = subscription.currency
    row.gateway_customer_ref = subscription.gateway_customer_ref
    row.auto_renew = subscription.auto_renew
    row.renewal_attempts = subscription.renewal_attempts
    row.last_renewal_attempt_at = as_utc(subscription.last_renewal_attempt_at)
    row.renewal_reminder_sent = subscription.renewal_reminder_sent
    row.scheduled_plan_change = _enum_value(subscription.scheduled_plan_change)
    row.entitlement_sync_pending = subscription.entitlement_sync_pending
    row.created_at = as_utc(subscription.created_at)
    row.updated_at = as_utc(subscription.updated_at)
    return row


def subscription_to_row(subscription: Subscription) -> SubscriptionModel:
    return apply_subscription_to_row(subscription, SubscriptionModel(id=parse_uuid(subscription.id)))


# =============================================================================
# TRANSACTIONS
# =============================================================================

def transaction_to_domain(row: BillingTransactionModel) -> Transaction:
    return Transaction(
        id=str(row.id),
        subscription_id=str(row.subscription_id),
        type=row.type,
        amount=row.amount,
        currency=row.currency,
        gateway_ref=row.gateway_ref,
        status=row.status,
        idempotency_key=row.idempotency_key,
        error_message=row.error_message,
        created_at=as_utc(row.created_at),
    )


def transaction_to_row(transaction: Transaction) -> BillingTransactionModel:
    return BillingTransactionModel(
        id=parse_uuid(transaction.id),
        subscription_id=parse_uuid(transaction.subscription_id),
        type=_enum_value(transaction.type),
        amount=transaction.amount,
        currency=transaction.currency,
        gateway_ref=transaction.gateway_ref,
        status=_enum_value(transaction.status),
        idempotency_key=transaction.idempotency_key,
        error_message=transaction.error_message,
        created_at=as_utc(transaction.created_at),
    )


# =============================================================================
# CAMPAIGNS
# =============================================================================

def campaign_to_domain(row: CampaignModel) -> Campaign:
    return Campaign(
        id=str(row.id),
        tenant_id=row.tenant_id,
        name=row.name,
        status=row.status,
        created_at=as_utc(row.created_at),
    )


def campaign_to_row(campaign: Campaign) -> CampaignModel:
    return CampaignModel(
        id=parse_uuid(campaign.id),
        tenant_id=campaign.tenant_id,
        name=campaign.name,
        status=_enum_value(campaign.status),
        created_at=as_utc(campaign.created_at),
        updated_at=as_utc(campaign.created_at),
    )
