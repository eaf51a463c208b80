# 📄 File: tenant_billing/modules/subscription_billing/application/handlers/plan_change_handlers.py
# 🧭 Purpose (Layman Explanation):
# Checks that a "switch me to a cheaper plan at month end" request makes sense and saves it,
# or removes a saved request when the restaurant changes its mind.
# 🧪 Purpose (Technical Summary):
# CQRS command handlers for scheduled downgrades. Validate tier, subscription state and price
# ordering, then write scheduled_plan_change through the subscription repository. The change
# itself is applied by the renewal sweep once the period has ended.
# 🔗 Dependencies:
# Subscription repository port, PlanCatalog, shared exceptions, structured logging
# 🔄 Connected Modules / Calls From:
# container wiring, presentation/api/v1/billing.py

__all__ = [
    "ScheduleDowngradeCommandHandler",
    "CancelScheduledDowngradeCommandHandler",
]

from tenant_billing.shared.core.exceptions import NotFoundError, ValidationError
from tenant_billing.shared.utils.logging import get_logger

from ...domain.models.plan import PlanCatalog
from ...domain.models.subscription import Subscription
from ...domain.repositories.subscription_repository import SubscriptionRepository
from ...domain.services.billing_cycle import Clock, utc_now
from ..commands.schedule_downgrade import CancelScheduledDowngradeCommand, ScheduleDowngradeCommand

logger = get_logger(__name__)


async def load_subscription(repository: SubscriptionRepository, subscription_id: str) -> Subscription:
    subscription = await repository.get_by_id(subscription_id)
    if subscription is None:
        raise NotFoundError(
            message=f"Subscription {subscription_id} not found",
            resource_type="subscription",
            resource_id=subscription_id,
        )
    return subscription


class ScheduleDowngradeCommandHandler:
    """
    Handles scheduling of a downgrade at the end of the current paid period.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        plan_catalog: PlanCatalog,
        clock: Clock = utc_now
    ):
        self._subscription_repository = subscription_repository
        self._plan_catalog = plan_catalog
        self._clock = clock

    async def handle(self, command: ScheduleDowngradeCommand) -> Subscription:
        """
        Validate and store the scheduled downgrade.

        Scheduling again replaces an earlier target.

        Raises:
            NotFoundError: Subscription does not exist
            ValidationError: Subscription not active, unknown tier, same tier or not cheaper
        """
        subscription = await load_subscription(self._subscription_repository, command.subscription_id)
        target = self._plan_catalog.parse_tier(command.target_tier)

        if not subscription.is_active:
            raise ValidationError(
                message="Only active subscriptions can schedule a plan change",
                field="status",
                value=subscription.status.value,
                constraint="active",
            )

        if target == subscription.plan_tier:
            raise ValidationError(
                message=f"Subscription is already on {target.value}",
                field="target_tier",
                value=target.value,
                constraint="different_from_current",
            )

        if not self._plan_catalog.is_cheaper(target, subscription.plan_tier):
            raise ValidationError(
                message=f"{target.value} is not cheaper than {subscription.plan_tier.value}; upgrades are applied at checkout",
                field="target_tier",
                value=target.value,
                constraint="cheaper_than_current",
            )

        updated = await self._subscription_repository.update(
            subscription.id,
            {"scheduled_plan_change": target, "updated_at": self._clock()},
        )

        logger.log_business_event(
            event_type="plan_change.scheduled",
            description=f"Scheduled {subscription.plan_tier.value} -> {target.value} at period end",
            entity_id=updated.id,
            entity_type="subscription",
            extra={
                "previous_target": subscription.scheduled_plan_change.value if subscription.scheduled_plan_change else None,
                "effective_at": updated.end_at.isoformat() if updated.end_at else None,
            },
        )
        return updated


class CancelScheduledDowngradeCommandHandler:
    """
    Handles cancellation of a scheduled downgrade. A no-op when nothing is scheduled.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        clock: Clock = utc_now
    ):
        self._subscription_repository = subscription_repository
        self._clock = clock

    async def handle(self, command: CancelScheduledDowngradeCommand) -> Subscription:
        subscription = await load_subscription(self._subscription_repository, command.subscription_id)

        if subscription.scheduled_plan_change is None:
            return subscription

        updated = await self._subscription_repository.update(
            subscription.id,
            {"scheduled_plan_change": None, "updated_at": self._clock()},
        )

        logger.log_business_event(
            event_type="plan_change.cancelled",
            description=f"Cancelled scheduled change to {subscription.scheduled_plan_change.value}",
            entity_id=updated.id,
            entity_type="subscription",
        )
        return updated
