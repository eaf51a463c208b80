"""
Shared fixtures: in-memory ports, a frozen clock and a fully wired engine.
"""

import pytest

from tenant_billing.modules.subscription_billing.domain.services.billing_cycle import BillingCycleCalculator
from tenant_billing.modules.subscription_billing.domain.services.entitlement_enforcer import EntitlementEnforcer
from tenant_billing.modules.subscription_billing.domain.services.renewal_engine import RenewalEngine

from .fakes import (
    FakePaymentGateway,
    FrozenClock,
    InMemoryCampaignRepository,
    InMemorySubscriptionRepository,
    RecordingPublisher,
    make_catalog,
)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def subscriptions():
    return InMemorySubscriptionRepository()


@pytest.fixture
def campaigns():
    return InMemoryCampaignRepository()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def billing_cycle():
    return BillingCycleCalculator(max_attempts=1)


@pytest.fixture
def enforcer(subscriptions, campaigns, catalog):
    return EntitlementEnforcer(subscriptions, campaigns, catalog)


@pytest.fixture
def engine(subscriptions, gateway, enforcer, catalog, billing_cycle, publisher, clock):
    return RenewalEngine(
        subscription_repository=subscriptions,
        payment_gateway=gateway,
        entitlement_enforcer=enforcer,
        plan_catalog=catalog,
        billing_cycle=billing_cycle,
        notification_publisher=publisher,
        clock=clock,
    )
