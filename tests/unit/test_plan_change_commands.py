from datetime import timedelta

import pytest

from tenant_billing.shared.core.exceptions import NotFoundError, ValidationError
from tenant_billing.modules.subscription_billing.application.commands.schedule_downgrade import (
    CancelScheduledDowngradeCommand,
    ScheduleDowngradeCommand,
)
from tenant_billing.modules.subscription_billing.application.handlers.plan_change_handlers import (
    CancelScheduledDowngradeCommandHandler,
    ScheduleDowngradeCommandHandler,
)
from tenant_billing.modules.subscription_billing.domain.models.plan import PlanTier
from tenant_billing.modules.subscription_billing.domain.models.subscription import SubscriptionStatus

from tests.fakes import NOW, make_subscription


@pytest.fixture
def schedule(subscriptions, catalog, clock):
    handler = ScheduleDowngradeCommandHandler(subscriptions, catalog, clock=clock)

    async def run(subscription_id, target_tier):
        return await handler.handle(ScheduleDowngradeCommand(subscription_id=subscription_id, target_tier=target_tier))

    return run


@pytest.fixture
def cancel(subscriptions, clock):
    handler = CancelScheduledDowngradeCommandHandler(subscriptions, clock=clock)

    async def run(subscription_id):
        return await handler.handle(CancelScheduledDowngradeCommand(subscription_id=subscription_id))

    return run


@pytest.fixture
def tier2(subscriptions):
    return subscriptions.add(make_subscription("t1", PlanTier.TIER2, end_at=NOW + timedelta(days=10)))


async def test_schedule_cheaper_tier(schedule, tier2, subscriptions):
    updated = await schedule(tier2.id, "tier1")

    assert updated.scheduled_plan_change == PlanTier.TIER1
    assert updated.plan_tier == PlanTier.TIER2
    assert updated.end_at == tier2.end_at
    assert subscriptions.transactions == []


async def test_reschedule_replaces_target(schedule, tier2):
    await schedule(tier2.id, "tier1")
    updated = await schedule(tier2.id, "free")

    assert updated.scheduled_plan_change == PlanTier.FREE


async def test_missing_subscription(schedule):
    with pytest.raises(NotFoundError):
        await schedule("does-not-exist", "free")


@pytest.mark.parametrize("target", ["tier2", "platinum"])
async def test_rejects_same_or_unknown_tier(schedule, tier2, target):
    with pytest.raises(ValidationError) as exc_info:
        await schedule(tier2.id, target)

    assert exc_info.value.status_code == 422


async def test_rejects_upgrade(schedule, subscriptions):
    tier1 = subscriptions.add(make_subscription("t1", PlanTier.TIER1, end_at=NOW + timedelta(days=10)))

    with pytest.raises(ValidationError) as exc_info:
        await schedule(tier1.id, "tier2")

    assert exc_info.value.details["constraint"] == "cheaper_than_current"


async def test_rejects_inactive_subscription(schedule, subscriptions):
    cancelled = subscriptions.add(make_subscription(
        "t1", PlanTier.TIER2, end_at=NOW + timedelta(days=10), status=SubscriptionStatus.CANCELLED
    ))

    with pytest.raises(ValidationError):
        await schedule(cancelled.id, "tier1")


async def test_free_subscription_cannot_downgrade(schedule, subscriptions):
    free = subscriptions.add(make_subscription("t1", PlanTier.FREE))

    with pytest.raises(ValidationError):
        await schedule(free.id, "free")


async def test_cancel_clears_scheduled_change(schedule, cancel, tier2):
    await schedule(tier2.id, "tier1")

    updated = await cancel(tier2.id)

    assert updated.scheduled_plan_change is None


async def test_cancel_without_schedule_is_noop(cancel, tier2, subscriptions):
    result = await cancel(tier2.id)

    assert result == tier2
    assert subscriptions.update_calls == 0


async def test_cancel_missing_subscription(cancel):
    with pytest.raises(NotFoundError):
        await cancel("nope")
