"""
In-memory test doubles for the billing ports.

The subscription fake applies the same filters as the SQL queries so engine
tests exercise the real eligibility rules on both sides.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set
from uuid import uuid4

from tenant_billing.shared.core.exceptions import (
    ConflictError,
    NotFoundError,
    PaymentDeclinedError,
    PaymentGatewayError,
    RepositoryError,
)
from tenant_billing.modules.subscription_billing.domain.events.publisher import NotificationPublisher
from tenant_billing.modules.subscription_billing.domain.gateways.payment_gateway import (
    CardOnFile,
    GatewayOrder,
    PaymentGatewayClient,
)
from tenant_billing.modules.subscription_billing.domain.models.campaign import Campaign, CampaignStatus
from tenant_billing.modules.subscription_billing.domain.models.plan import PlanCatalog, PlanDefinition, PlanTier
from tenant_billing.modules.subscription_billing.domain.models.subscription import Subscription, SubscriptionStatus
from tenant_billing.modules.subscription_billing.domain.models.transaction import Transaction
from tenant_billing.modules.subscription_billing.domain.repositories.campaign_repository import CampaignRepository
from tenant_billing.modules.subscription_billing.domain.repositories.subscription_repository import (
    LedgerEntries,
    SubscriptionRepository,
    as_ledger_entries,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_catalog(tier1_limit: int = 3) -> PlanCatalog:
    return PlanCatalog({
        PlanTier.FREE: PlanDefinition(tier=PlanTier.FREE, monthly_price=Decimal("0"), campaign_concurrency_limit=1),
        PlanTier.TIER1: PlanDefinition(
            tier=PlanTier.TIER1, monthly_price=Decimal("399"), campaign_concurrency_limit=tier1_limit
        ),
        PlanTier.TIER2: PlanDefinition(tier=PlanTier.TIER2, monthly_price=Decimal("599"), campaign_concurrency_limit=None),
    })


def make_subscription(
    tenant_id: str = "tenant-1",
    plan_tier: PlanTier = PlanTier.TIER1,
    end_at: Optional[datetime] = None,
    **overrides: Any
) -> Subscription:
    paid = plan_tier != PlanTier.FREE
    fields: Dict[str, Any] = {
        "tenant_id": tenant_id,
        "plan_tier": plan_tier,
        "status": SubscriptionStatus.ACTIVE,
        "start_at": NOW - timedelta(days=29),
        "end_at": end_at if paid else None,
        "next_billing_at": end_at if paid else None,
        "price_paid": Decimal("399") if plan_tier == PlanTier.TIER1 else Decimal("599") if paid else Decimal("0"),
        "gateway_customer_ref": f"cus_{tenant_id}",
        "auto_renew": paid,
        "created_at": NOW - timedelta(days=29),
        "updated_at": NOW - timedelta(days=29),
    }
    fields.update(overrides)
    return Subscription(**fields)


def make_campaign(tenant_id: str, minutes_ago: int, status: CampaignStatus = CampaignStatus.RUNNING) -> Campaign:
    return Campaign(
        id=str(uuid4()),
        tenant_id=tenant_id,
        name=f"campaign {minutes_ago}m",
        status=status,
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


# =============================================================================
# REPOSITORIES
# =============================================================================

class InMemorySubscriptionRepository(SubscriptionRepository):
    def __init__(self):
        self.subscriptions: Dict[str, Subscription] = {}
        self.transactions: List[Transaction] = []
        self.fail_updates_for: Set[str] = set()
        self.fail_update_when: Optional[Callable[[Dict[str, Any]], bool]] = None
        self.update_calls = 0

    def add(self, subscription: Subscription) -> Subscription:
        self.subscriptions[subscription.id] = subscription
        return subscription

    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        return self.subscriptions.get(subscription_id)

    async def get_by_tenant_id(self, tenant_id: str) -> Optional[Subscription]:
        for subscription in self.subscriptions.values():
            if subscription.tenant_id == tenant_id:
                return subscription
        return None

    async def create_free_subscription(
        self,
        tenant_id: str,
        gateway_customer_ref: Optional[str] = None
    ) -> Subscription:
        if await self.get_by_tenant_id(tenant_id):
            raise ConflictError(f"Tenant {tenant_id} already has a subscription", resource="subscription")
        return self.add(Subscription.create_free_subscription(tenant_id, gateway_customer_ref=gateway_customer_ref))

    def _sorted(self, subscriptions) -> List[Subscription]:
        return sorted(subscriptions, key=lambda s: (s.end_at, s.id))

    def _billable(self, s: Subscription) -> bool:
        return s.is_active and s.auto_renew and s.plan_tier != PlanTier.FREE and s.end_at is not None

    async def list_due_for_renewal(self, cutoff: datetime, max_attempts: int) -> List[Subscription]:
        return self._sorted(
            s for s in self.subscriptions.values()
            if self._billable(s)
            and s.scheduled_plan_change is None
            and s.renewal_attempts < max_attempts
            and s.end_at <= cutoff
        )

    async def list_due_for_reminder(self, window_start: datetime, window_end: datetime) -> List[Subscription]:
        return self._sorted(
            s for s in self.subscriptions.values()
            if self._billable(s)
            and not s.renewal_reminder_sent
            and s.scheduled_plan_change != PlanTier.FREE
            and window_start <= s.end_at < window_end
        )

    async def list_downgrades_due(self, now: datetime) -> List[Subscription]:
        return self._sorted(
            s for s in self.subscriptions.values()
            if s.is_active and s.scheduled_plan_change is not None and s.end_at is not None and s.end_at <= now
        )

    async def list_lapsed(self, now: datetime) -> List[Subscription]:
        return self._sorted(
            s for s in self.subscriptions.values()
            if s.is_active
            and not s.auto_renew
            and s.plan_tier != PlanTier.FREE
            and s.scheduled_plan_change is None
            and s.end_at is not None
            and s.end_at <= now
        )

    async def list_entitlement_sync_pending(self) -> List[Subscription]:
        return [s for s in self.subscriptions.values() if s.entitlement_sync_pending]

    async def update(
        self,
        subscription_id: str,
        changes: Dict[str, Any],
        transaction: LedgerEntries = None
    ) -> Subscription:
        self.update_calls += 1
        failing = self.fail_update_when is not None and self.fail_update_when(changes)
        if subscription_id in self.fail_updates_for or failing:
            raise RepositoryError("Simulated write failure", operation="update", entity="subscription")
        current = self.subscriptions.get(subscription_id)
        if current is None:
            raise NotFoundError(f"Subscription {subscription_id} not found", "subscription", subscription_id)
        updated = current.with_changes(changes)
        self.subscriptions[subscription_id] = updated
        self.transactions.extend(as_ledger_entries(transaction))
        return updated

    async def list_transactions(self, subscription_id: str) -> List[Transaction]:
        return [t for t in self.transactions if t.subscription_id == subscription_id]


class InMemoryCampaignRepository(CampaignRepository):
    def __init__(self):
        self.campaigns: Dict[str, Campaign] = {}
        self.fail_on: Set[str] = set()

    def add(self, *campaigns: Campaign) -> None:
        for campaign in campaigns:
            self.campaigns[campaign.id] = campaign

    async def list_active_for_tenant(self, tenant_id: str) -> List[Campaign]:
        active = [c for c in self.campaigns.values() if c.tenant_id == tenant_id and c.is_active]
        return sorted(active, key=lambda c: (c.created_at, c.id), reverse=True)

    async def update_status(self, campaign_id: str, status: CampaignStatus) -> Campaign:
        if campaign_id in self.fail_on:
            raise RepositoryError("Simulated campaign write failure", operation="update_status", entity="campaign")
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found", "campaign", campaign_id)
        updated = campaign.model_copy(update={"status": status})
        self.campaigns[campaign_id] = updated
        return updated

    def statuses(self, tenant_id: str) -> Dict[str, CampaignStatus]:
        return {c.id: c.status for c in self.campaigns.values() if c.tenant_id == tenant_id}


# =============================================================================
# GATEWAY AND PUBLISHER
# =============================================================================

class FakePaymentGateway(PaymentGatewayClient):
    """
    Card-on-file gateway double. Charges with a key it has already seen return
    the original order without charging again.
    """

    def __init__(self):
        self.cards: Dict[str, CardOnFile] = {}
        self.declined_customers: Set[str] = set()
        self.broken_customers: Set[str] = set()
        self.tokenize_errors: Dict[str, Exception] = {}
        self.orders_by_key: Dict[str, GatewayOrder] = {}
        self.charges: List[Dict[str, Any]] = []
        self.closed = False

    def add_card(self, customer_ref: str, name: str = "Ana Pérez") -> CardOnFile:
        card = CardOnFile(card_id=f"card_{customer_ref}", cardholder_name=name, last_four="4242", is_default=True)
        self.cards[customer_ref] = card
        return card

    async def get_default_card(self, customer_ref: str) -> Optional[CardOnFile]:
        if customer_ref in self.broken_customers:
            raise PaymentGatewayError("Gateway unavailable", operation="cards")
        return self.cards.get(customer_ref)

    async def tokenize_card(self, customer_ref: str, card_id: str, cardholder_name: str) -> str:
        if customer_ref in self.tokenize_errors:
            raise self.tokenize_errors[customer_ref]
        return f"tok_{card_id}"

    async def charge(
        self,
        customer_ref: str,
        token: str,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str
    ) -> GatewayOrder:
        if idempotency_key in self.orders_by_key:
            return self.orders_by_key[idempotency_key]
        if customer_ref in self.declined_customers:
            raise PaymentDeclinedError("Card declined", operation="orders")

        order = GatewayOrder(
            order_id=f"ord_{len(self.orders_by_key) + 1}",
            status="paid",
            amount=amount,
            currency=currency,
        )
        self.orders_by_key[idempotency_key] = order
        self.charges.append({
            "customer_ref": customer_ref,
            "token": token,
            "amount": amount,
            "currency": currency,
            "description": description,
            "idempotency_key": idempotency_key,
        })
        return order

    async def close(self) -> None:
        self.closed = True


class RecordingPublisher(NotificationPublisher):
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def publish(self, event) -> None:
        if self.fail:
            raise RuntimeError("notifier down")
        self.events.append(event)

    def types(self) -> List[str]:
        return [event.event_type for event in self.events]
