# 📄 File: tenant_billing/modules/subscription_billing/container.py
# 🧭 Purpose (Layman Explanation):
# Puts all the billing pieces together (database, payment provider, plan prices, the renewal
# engine and the scheduler) so the web app and the daily job use the same setup.
# 🧪 Purpose (Technical Summary):
# Composition root for the subscription billing module. Builds the production object graph from
# Settings, accepts overrides for every port (tests inject in-memory fakes), and owns the
# startup/shutdown of the database engine and gateway HTTP session.
# 🔗 Dependencies:
# Settings, DatabaseConnectionManager, DatabaseSessionManager, SQLAlchemy repositories,
# EcartPayGateway, domain services, SweepScheduler, command handlers (plan changes, auto-renew)
# 🔄 Connected Modules / Calls From:
# tenant_billing/main.py (FastAPI lifespan), background_jobs/tasks/renewal_sweep.py (Celery task)

from typing import Optional

from tenant_billing.shared.config.settings import Settings, get_settings
from tenant_billing.shared.infrastructure.database.connection import DatabaseConnectionManager
from tenant_billing.shared.infrastructure.database.session import DatabaseSessionManager
from tenant_billing.shared.utils.logging import get_logger

from .application.commands.schedule_downgrade import CancelScheduledDowngradeCommand, ScheduleDowngradeCommand
from .application.commands.toggle_auto_renew import ToggleAutoRenewCommand
from .application.handlers.auto_renew_handler import ToggleAutoRenewCommandHandler
from .application.handlers.plan_change_handlers import (
    CancelScheduledDowngradeCommandHandler,
    ScheduleDowngradeCommandHandler,
)
from .application.scheduler import SweepScheduler
from .domain.events.publisher import LoggingNotificationPublisher, NotificationPublisher
from .domain.gateways.payment_gateway import PaymentGatewayClient
from .domain.models.plan import PlanCatalog
from .domain.models.subscription import Subscription
from .domain.models.sweep_report import SweepReport
from .domain.repositories.campaign_repository import CampaignRepository
from .domain.repositories.subscription_repository import SubscriptionRepository
from .domain.services.billing_cycle import BillingCycleCalculator, Clock, utc_now
from .domain.services.entitlement_enforcer import CampaignUsage, EntitlementEnforcer
from .domain.services.renewal_engine import RenewalEngine
from .infrastructure.database.campaign_repository_impl import CampaignRepositoryImpl
from .infrastructure.database.subscription_repository_impl import SubscriptionRepositoryImpl
from .infrastructure.external.ecartpay_gateway import EcartPayGateway

logger = get_logger(__name__)


class BillingContainer:
    """
    Wires the subscription billing module.

    Any port left as None gets its production implementation. When both
    repositories are injected no database engine is created.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        subscription_repository: Optional[SubscriptionRepository] = None,
        campaign_repository: Optional[CampaignRepository] = None,
        payment_gateway: Optional[PaymentGatewayClient] = None,
        notification_publisher: Optional[NotificationPublisher] = None,
        connection_manager: Optional[DatabaseConnectionManager] = None,
        clock: Clock = utc_now
    ):
        self.settings = settings or get_settings()
        self.clock = clock

        self.connection_manager: Optional[DatabaseConnectionManager] = None
        self.session_manager: Optional[DatabaseSessionManager] = None
        if subscription_repository is None or campaign_repository is None:
            self.connection_manager = connection_manager or DatabaseConnectionManager(self.settings)
            self.session_manager = DatabaseSessionManager()

        self.subscription_repository = subscription_repository or SubscriptionRepositoryImpl(self.session_manager)
        self.campaign_repository = campaign_repository or CampaignRepositoryImpl(self.session_manager)
        self.payment_gateway = payment_gateway or EcartPayGateway.from_settings(self.settings)
        self.notification_publisher = notification_publisher or LoggingNotificationPublisher()

        self.plan_catalog = PlanCatalog.from_settings(self.settings)
        self.billing_cycle = BillingCycleCalculator.from_settings(self.settings)
        self.entitlement_enforcer = EntitlementEnforcer(
            subscription_repository=self.subscription_repository,
            campaign_repository=self.campaign_repository,
            plan_catalog=self.plan_catalog,
        )
        self.renewal_engine = RenewalEngine(
            subscription_repository=self.subscription_repository,
            payment_gateway=self.payment_gateway,
            entitlement_enforcer=self.entitlement_enforcer,
            plan_catalog=self.plan_catalog,
            billing_cycle=self.billing_cycle,
            notification_publisher=self.notification_publisher,
            clock=self.clock,
            simulate_payment_failure=self.settings.SIMULATE_PAYMENT_FAILURE,
        )
        self.scheduler = SweepScheduler(self.renewal_engine.run_sweep, clock=self.clock)

        self.schedule_downgrade_handler = ScheduleDowngradeCommandHandler(
            self.subscription_repository, self.plan_catalog, clock=self.clock
        )
        self.cancel_scheduled_downgrade_handler = CancelScheduledDowngradeCommandHandler(
            self.subscription_repository, clock=self.clock
        )
        self.toggle_auto_renew_handler = ToggleAutoRenewCommandHandler(
            self.subscription_repository, clock=self.clock
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def startup(self) -> None:
        """Create the database engine and bind the session manager."""
        if self.connection_manager is not None:
            await self.connection_manager.initialize()
            self.session_manager.initialize(self.connection_manager.engine)
            logger.info("✅ Billing database initialized")

    async def shutdown(self) -> None:
        """Close the gateway session and dispose the engine."""
        try:
            await self.payment_gateway.close()
        except Exception as e:
            logger.error(f"❌ Payment gateway close failed: {e}")

        if self.connection_manager is not None:
            await self.connection_manager.close()
            logger.info("✅ Billing database closed")

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def run_sweep(self) -> SweepReport:
        return await self.renewal_engine.run_sweep()

    async def schedule_downgrade(self, subscription_id: str, target_tier: str) -> Subscription:
        return await self.schedule_downgrade_handler.handle(
            ScheduleDowngradeCommand(subscription_id=subscription_id, target_tier=target_tier)
        )

    async def cancel_scheduled_downgrade(self, subscription_id: str) -> Subscription:
        return await self.cancel_scheduled_downgrade_handler.handle(
            CancelScheduledDowngradeCommand(subscription_id=subscription_id)
        )

    async def toggle_auto_renew(self, subscription_id: str, auto_renew: bool) -> Subscription:
        return await self.toggle_auto_renew_handler.handle(
            ToggleAutoRenewCommand(subscription_id=subscription_id, auto_renew=auto_renew)
        )

    async def campaign_usage(self, tenant_id: str) -> CampaignUsage:
        return await self.entitlement_enforcer.campaign_usage(tenant_id)
