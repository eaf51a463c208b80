from datetime import timedelta

import pytest

from tenant_billing.background_jobs.celery_config import RENEWAL_SWEEP_TASK, CeleryConfig
from tenant_billing.background_jobs.tasks import renewal_sweep
from tenant_billing.modules.subscription_billing.container import BillingContainer
from tenant_billing.shared.config.settings import Settings

from tests.fakes import (
    NOW,
    FakePaymentGateway,
    FrozenClock,
    InMemoryCampaignRepository,
    InMemorySubscriptionRepository,
    RecordingPublisher,
    make_subscription,
)


def test_daily_sweep_is_scheduled_from_settings():
    config = CeleryConfig(Settings(RENEWAL_CRON_SCHEDULE="30 5 * * *", RENEWAL_TIMEZONE="America/Mexico_City"))

    entry = config.beat_schedule["daily-renewal-sweep"]

    assert entry["task"] == RENEWAL_SWEEP_TASK
    assert entry["schedule"].hour == {5}
    assert entry["schedule"].minute == {30}
    assert entry["kwargs"] == {"source": "cron"}
    assert entry["options"]["expires"] == 3600
    assert config.timezone == "America/Mexico_City"
    assert config.task_routes[RENEWAL_SWEEP_TASK] == {"queue": "billing"}


@pytest.fixture
def worker_container(monkeypatch):
    container = BillingContainer(
        settings=Settings(),
        subscription_repository=InMemorySubscriptionRepository(),
        campaign_repository=InMemoryCampaignRepository(),
        payment_gateway=FakePaymentGateway(),
        notification_publisher=RecordingPublisher(),
        clock=FrozenClock(),
    )
    monkeypatch.setattr(renewal_sweep, "_container", container)
    return container


async def test_trigger_sweep_returns_report(worker_container):
    subscription = worker_container.subscription_repository.add(
        make_subscription("t1", end_at=NOW - timedelta(hours=1))
    )
    worker_container.payment_gateway.add_card(subscription.gateway_customer_ref)

    result = await renewal_sweep.trigger_sweep("cron")

    assert result["skipped"] is False
    assert result["report"]["renewals_succeeded"] == 1
    assert worker_container.scheduler.last_source == "cron"


async def test_trigger_sweep_skips_when_busy(worker_container):
    worker_container.scheduler.busy = True

    result = await renewal_sweep.trigger_sweep("cron")

    assert result == {"skipped": True, "source": "cron"}
