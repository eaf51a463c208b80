from datetime import timedelta
from decimal import Decimal

import pytest

from tenant_billing.shared.core.exceptions import ConflictError, NotFoundError, TransactionError
from tenant_billing.modules.subscription_billing.domain.models.campaign import CampaignStatus
from tenant_billing.modules.subscription_billing.domain.models.plan import PlanTier
from tenant_billing.modules.subscription_billing.domain.models.subscription import SubscriptionStatus
from tenant_billing.modules.subscription_billing.domain.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from tenant_billing.modules.subscription_billing.domain.services.billing_cycle import BillingCycleCalculator
from tenant_billing.modules.subscription_billing.domain.services.entitlement_enforcer import EntitlementEnforcer
from tenant_billing.modules.subscription_billing.domain.services.renewal_engine import RenewalEngine

from tests.fakes import NOW, FakePaymentGateway, FrozenClock, RecordingPublisher, make_campaign, make_catalog, make_subscription


class TestSubscriptionStore:
    async def test_create_free_subscription(self, sql_subscriptions):
        created = await sql_subscriptions.create_free_subscription("t1", gateway_customer_ref="cus_t1")

        loaded = await sql_subscriptions.get_by_tenant_id("t1")

        assert loaded.id == created.id
        assert loaded.plan_tier == PlanTier.FREE
        assert loaded.end_at is None
        assert loaded.auto_renew is False
        assert loaded.gateway_customer_ref == "cus_t1"

    async def test_one_subscription_per_tenant(self, sql_subscriptions):
        await sql_subscriptions.create_free_subscription("t1")

        with pytest.raises(ConflictError):
            await sql_subscriptions.create_free_subscription("t1")

    async def test_round_trip_keeps_utc_and_decimals(self, sql_subscriptions):
        subscription = await sql_subscriptions.add(make_subscription(
            "t1", PlanTier.TIER2, end_at=NOW + timedelta(days=3), scheduled_plan_change=PlanTier.TIER1
        ))

        loaded = await sql_subscriptions.get_by_id(subscription.id)

        assert loaded.end_at == NOW + timedelta(days=3)
        assert loaded.end_at.tzinfo is not None
        assert loaded.price_paid == Decimal("599")
        assert loaded.scheduled_plan_change == PlanTier.TIER1

    async def test_unknown_ids(self, sql_subscriptions):
        assert await sql_subscriptions.get_by_id("not-a-uuid") is None
        assert await sql_subscriptions.get_by_tenant_id("ghost") is None
        assert await sql_subscriptions.list_transactions("not-a-uuid") == []


class TestSweepQueries:
    @pytest.fixture
    async def population(self, sql_subscriptions):
        rows = {
            "due": make_subscription("due", end_at=NOW - timedelta(hours=2)),
            "due_soon": make_subscription("due_soon", end_at=NOW + timedelta(hours=20)),
            "later": make_subscription("later", end_at=NOW + timedelta(days=3, hours=6)),
            "later_to_free": make_subscription(
                "later_to_free", end_at=NOW + timedelta(days=3, hours=7), scheduled_plan_change=PlanTier.FREE
            ),
            "later_to_tier1": make_subscription(
                "later_to_tier1", PlanTier.TIER2, end_at=NOW + timedelta(days=3, hours=8),
                scheduled_plan_change=PlanTier.TIER1,
            ),
            "no_auto": make_subscription("no_auto", end_at=NOW - timedelta(hours=2), auto_renew=False),
            "exhausted": make_subscription("exhausted", end_at=NOW - timedelta(hours=2), renewal_attempts=1),
            "cancelled": make_subscription(
                "cancelled", end_at=NOW - timedelta(hours=2), status=SubscriptionStatus.CANCELLED
            ),
            "scheduled": make_subscription(
                "scheduled", PlanTier.TIER2, end_at=NOW - timedelta(hours=1), scheduled_plan_change=PlanTier.FREE
            ),
            "free": make_subscription("free", PlanTier.FREE),
        }
        for subscription in rows.values():
            await sql_subscriptions.add(subscription)
        return rows

    async def test_due_for_renewal(self, sql_subscriptions, population):
        due = await sql_subscriptions.list_due_for_renewal(NOW + timedelta(days=1), max_attempts=1)

        assert [s.tenant_id for s in due] == ["due", "due_soon"]

    async def test_due_for_renewal_honours_attempt_budget(self, sql_subscriptions, population):
        due = await sql_subscriptions.list_due_for_renewal(NOW + timedelta(days=1), max_attempts=2)

        assert {s.tenant_id for s in due} == {"due", "due_soon", "exhausted"}

    async def test_due_for_reminder(self, sql_subscriptions, population):
        due = await sql_subscriptions.list_due_for_reminder(NOW + timedelta(days=3), NOW + timedelta(days=4))

        assert [s.tenant_id for s in due] == ["later", "later_to_tier1"]

    async def test_downgrades_due(self, sql_subscriptions, population):
        due = await sql_subscriptions.list_downgrades_due(NOW)

        assert [s.tenant_id for s in due] == ["scheduled"]

    async def test_lapsed(self, sql_subscriptions, population):
        lapsed = await sql_subscriptions.list_lapsed(NOW)

        assert [s.tenant_id for s in lapsed] == ["no_auto"]

    async def test_entitlement_sync_pending(self, sql_subscriptions, population):
        await sql_subscriptions.update(population["free"].id, {"entitlement_sync_pending": True})

        pending = await sql_subscriptions.list_entitlement_sync_pending()

        assert [s.tenant_id for s in pending] == ["free"]


class TestAtomicUpdate:
    async def test_update_writes_transaction_with_state(self, sql_subscriptions):
        subscription = await sql_subscriptions.add(make_subscription("t1", end_at=NOW - timedelta(hours=1)))
        transaction = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.RENEWAL,
            amount=Decimal("399"),
            gateway_ref="ord_1",
            status=TransactionStatus.COMPLETED,
            idempotency_key=f"{subscription.id}:2026-10-19",
            created_at=NOW,
        )

        updated = await sql_subscriptions.update(
            subscription.id,
            {"end_at": NOW + timedelta(days=30), "renewal_attempts": 0},
            transaction,
        )

        assert updated.end_at == NOW + timedelta(days=30)
        [stored] = await sql_subscriptions.list_transactions(subscription.id)
        assert stored.type == TransactionType.RENEWAL
        assert stored.amount == Decimal("399")
        assert stored.gateway_ref == "ord_1"

    async def test_invalid_change_writes_nothing(self, sql_subscriptions):
        subscription = await sql_subscriptions.add(make_subscription("t1", end_at=NOW + timedelta(days=2)))
        transaction = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.DOWNGRADE,
            status=TransactionStatus.COMPLETED,
        )

        with pytest.raises(TransactionError):
            await sql_subscriptions.update(subscription.id, {"plan_tier": PlanTier.FREE}, transaction)

        loaded = await sql_subscriptions.get_by_id(subscription.id)
        assert loaded.plan_tier == PlanTier.TIER1
        assert await sql_subscriptions.list_transactions(subscription.id) == []

    async def test_update_missing(self, sql_subscriptions):
        with pytest.raises(NotFoundError):
            await sql_subscriptions.update("3f1c9a4e-8d1b-4c55-9a6e-2f0f5d1e7c11", {"auto_renew": False})

    async def test_update_writes_several_entries_with_state(self, sql_subscriptions):
        subscription = await sql_subscriptions.add(make_subscription("t1", end_at=NOW - timedelta(hours=1)))
        failed = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.RENEWAL_FAILED,
            amount=Decimal("399"),
            status=TransactionStatus.FAILED,
            error_message="declined",
            created_at=NOW,
        )
        downgrade = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.DOWNGRADE,
            status=TransactionStatus.COMPLETED,
            created_at=NOW + timedelta(seconds=1),
        )

        updated = await sql_subscriptions.update(
            subscription.id,
            {"plan_tier": PlanTier.FREE, "end_at": None, "next_billing_at": None, "auto_renew": False},
            [failed, downgrade],
        )

        assert updated.plan_tier == PlanTier.FREE
        stored = await sql_subscriptions.list_transactions(subscription.id)
        assert [t.type for t in stored] == [TransactionType.RENEWAL_FAILED, TransactionType.DOWNGRADE]
        assert stored[0].error_message == "declined"

    async def test_invalid_change_drops_every_entry(self, sql_subscriptions):
        subscription = await sql_subscriptions.add(make_subscription("t1", end_at=NOW + timedelta(days=2)))
        entries = [
            Transaction(subscription_id=subscription.id, type=kind, status=TransactionStatus.COMPLETED)
            for kind in (TransactionType.RENEWAL_FAILED, TransactionType.DOWNGRADE)
        ]

        with pytest.raises(TransactionError):
            await sql_subscriptions.update(subscription.id, {"plan_tier": PlanTier.FREE}, entries)

        assert (await sql_subscriptions.get_by_id(subscription.id)).plan_tier == PlanTier.TIER1
        assert await sql_subscriptions.list_transactions(subscription.id) == []


class TestCampaignStore:
    async def test_active_campaigns_newest_first(self, sql_campaigns):
        old = make_campaign("t1", minutes_ago=30)
        new = make_campaign("t1", minutes_ago=5, status=CampaignStatus.SCHEDULED)
        paused = make_campaign("t1", minutes_ago=1, status=CampaignStatus.PAUSED)
        other = make_campaign("t2", minutes_ago=1)
        for campaign in (old, new, paused, other):
            await sql_campaigns.add(campaign)

        active = await sql_campaigns.list_active_for_tenant("t1")

        assert [c.id for c in active] == [new.id, old.id]

    async def test_update_status(self, sql_campaigns):
        campaign = await sql_campaigns.add(make_campaign("t1", minutes_ago=5))

        updated = await sql_campaigns.update_status(campaign.id, CampaignStatus.PAUSED)

        assert updated.status == CampaignStatus.PAUSED
        assert await sql_campaigns.list_active_for_tenant("t1") == []

    async def test_update_missing_campaign(self, sql_campaigns):
        with pytest.raises(NotFoundError):
            await sql_campaigns.update_status("not-a-uuid", CampaignStatus.PAUSED)


async def test_sweep_against_database(sql_subscriptions, sql_campaigns):
    gateway = FakePaymentGateway()
    catalog = make_catalog()
    clock = FrozenClock()
    engine = RenewalEngine(
        subscription_repository=sql_subscriptions,
        payment_gateway=gateway,
        entitlement_enforcer=EntitlementEnforcer(sql_subscriptions, sql_campaigns, catalog),
        plan_catalog=catalog,
        billing_cycle=BillingCycleCalculator(max_attempts=1),
        notification_publisher=RecordingPublisher(),
        clock=clock,
    )

    renewing = await sql_subscriptions.add(make_subscription("renewing", end_at=NOW - timedelta(hours=1)))
    gateway.add_card(renewing.gateway_customer_ref)
    failing = await sql_subscriptions.add(make_subscription("failing", end_at=NOW - timedelta(hours=1)))
    for minutes in (10, 20, 30):
        await sql_campaigns.add(make_campaign("failing", minutes_ago=minutes))

    report = await engine.run_sweep()

    assert report.renewals_succeeded == 1
    assert report.renewals_failed == 1
    renewed = await sql_subscriptions.get_by_id(renewing.id)
    assert renewed.end_at == NOW + timedelta(days=30)
    degraded = await sql_subscriptions.get_by_id(failing.id)
    assert degraded.plan_tier == PlanTier.FREE
    assert len(await sql_campaigns.list_active_for_tenant("failing")) == 1
    assert {t.type for t in await sql_subscriptions.list_transactions(failing.id)} == {
        TransactionType.RENEWAL_FAILED,
        TransactionType.DOWNGRADE,
    }
