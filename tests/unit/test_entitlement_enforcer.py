from datetime import timedelta

import pytest

from tenant_billing.shared.core.exceptions import EntitlementEnforcementError, NotFoundError
from tenant_billing.modules.subscription_billing.domain.models.campaign import CampaignStatus
from tenant_billing.modules.subscription_billing.domain.models.plan import PlanTier
from tenant_billing.modules.subscription_billing.domain.models.subscription import SubscriptionStatus

from tests.fakes import NOW, make_campaign, make_subscription


async def test_free_tier_keeps_only_newest_campaign(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    oldest = make_campaign("t1", minutes_ago=30)
    middle = make_campaign("t1", minutes_ago=20)
    newest = make_campaign("t1", minutes_ago=10)
    campaigns.add(oldest, middle, newest)

    result = await enforcer.enforce("t1")

    assert result.limit == 1
    assert result.kept == [newest.id]
    assert set(result.paused) == {oldest.id, middle.id}
    statuses = campaigns.statuses("t1")
    assert statuses[newest.id] == CampaignStatus.RUNNING
    assert statuses[oldest.id] == CampaignStatus.PAUSED
    assert statuses[middle.id] == CampaignStatus.PAUSED


async def test_scheduled_campaigns_count_against_limit(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    running = make_campaign("t1", minutes_ago=30)
    scheduled = make_campaign("t1", minutes_ago=5, status=CampaignStatus.SCHEDULED)
    draft = make_campaign("t1", minutes_ago=1, status=CampaignStatus.DRAFT)
    campaigns.add(running, scheduled, draft)

    result = await enforcer.enforce("t1")

    assert result.kept == [scheduled.id]
    assert result.paused == [running.id]
    assert campaigns.statuses("t1")[draft.id] == CampaignStatus.DRAFT


async def test_within_limit_is_noop(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.TIER1))
    campaigns.add(*(make_campaign("t1", minutes_ago=m) for m in (1, 2, 3)))

    result = await enforcer.enforce("t1")

    assert result.paused == []
    assert len(result.kept) == 3


async def test_unbounded_tier_never_pauses(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.TIER2))
    campaigns.add(*(make_campaign("t1", minutes_ago=m) for m in range(1, 11)))

    result = await enforcer.enforce("t1")

    assert result.limit is None
    assert result.paused == []


async def test_enforce_is_idempotent(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    campaigns.add(make_campaign("t1", minutes_ago=2), make_campaign("t1", minutes_ago=1))

    first = await enforcer.enforce("t1")
    second = await enforcer.enforce("t1")

    assert len(first.paused) == 1
    assert second.paused == []
    assert second.kept == first.kept


async def test_other_tenants_untouched(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    other = [make_campaign("t2", minutes_ago=m) for m in (1, 2)]
    campaigns.add(make_campaign("t1", minutes_ago=1), *other)

    await enforcer.enforce("t1")

    assert all(status == CampaignStatus.RUNNING for status in campaigns.statuses("t2").values())


async def test_missing_subscription_raises(enforcer):
    with pytest.raises(NotFoundError):
        await enforcer.enforce("ghost")


async def test_partial_failure_reports_progress(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    old = make_campaign("t1", minutes_ago=30)
    older = make_campaign("t1", minutes_ago=40)
    newest = make_campaign("t1", minutes_ago=1)
    campaigns.add(old, older, newest)
    campaigns.fail_on.add(older.id)

    with pytest.raises(EntitlementEnforcementError) as exc_info:
        await enforcer.enforce("t1")

    assert exc_info.value.details["paused"] == [old.id]
    assert exc_info.value.details["failed_campaign_id"] == older.id


# =============================================================================
# CAMPAIGN USAGE
# =============================================================================

async def test_usage_below_limit_allows_another(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.TIER1, end_at=NOW + timedelta(days=5)))
    campaigns.add(
        make_campaign("t1", minutes_ago=5),
        make_campaign("t1", minutes_ago=3, status=CampaignStatus.SCHEDULED),
        make_campaign("t1", minutes_ago=1, status=CampaignStatus.DRAFT),
    )

    usage = await enforcer.campaign_usage("t1")

    assert usage.plan_tier == PlanTier.TIER1
    assert usage.limit == 3
    assert usage.active == 2
    assert usage.allowed is True
    assert await enforcer.can_activate_campaign("t1") is True


async def test_free_plan_at_limit_is_refused(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.FREE))
    campaigns.add(make_campaign("t1", minutes_ago=1))

    assert await enforcer.can_activate_campaign("t1") is False
    assert list(campaigns.statuses("t1").values()) == [CampaignStatus.RUNNING]


async def test_unlimited_tier_always_allows(subscriptions, campaigns, enforcer):
    subscriptions.add(make_subscription("t1", PlanTier.TIER2, end_at=NOW + timedelta(days=5)))
    campaigns.add(*(make_campaign("t1", minutes_ago=m) for m in range(1, 8)))

    usage = await enforcer.campaign_usage("t1")

    assert usage.limit is None
    assert usage.active == 7
    assert usage.allowed is True


async def test_cancelled_subscription_is_refused(subscriptions, enforcer):
    subscriptions.add(make_subscription(
        "t1", end_at=NOW + timedelta(days=5), status=SubscriptionStatus.CANCELLED, auto_renew=False
    ))

    assert await enforcer.can_activate_campaign("t1") is False


async def test_usage_for_unknown_tenant_raises(enforcer):
    with pytest.raises(NotFoundError):
        await enforcer.campaign_usage("ghost")
