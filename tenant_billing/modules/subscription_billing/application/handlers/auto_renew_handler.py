# 📄 File: tenant_billing/modules/subscription_billing/application/handlers/auto_renew_handler.py
# 🧭 Purpose (Layman Explanation):
# Turns automatic renewal on or off for a restaurant. Only active paid plans can renew, so the
# free plan can never have it switched on.
# 🧪 Purpose (Technical Summary):
# CQRS command handler for ToggleAutoRenewCommand. Rejects enabling on free or inactive
# subscriptions, skips the write when the flag already matches, and logs a business event.
# 🔗 Dependencies:
# Subscription repository port, shared exceptions, structured logging
# 🔄 Connected Modules / Calls From:
# container wiring, presentation/api/v1/billing.py

from tenant_billing.shared.core.exceptions import ValidationError
from tenant_billing.shared.utils.logging import get_logger

from ...domain.models.plan import PlanTier
from ...domain.models.subscription import Subscription
from ...domain.repositories.subscription_repository import SubscriptionRepository
from ...domain.services.billing_cycle import Clock, utc_now
from ..commands.toggle_auto_renew import ToggleAutoRenewCommand
from .plan_change_handlers import load_subscription

logger = get_logger(__name__)


class ToggleAutoRenewCommandHandler:
    """
    Handles the auto-renew switch of a subscription.

    Turning renewal off keeps the paid plan until end_at; the sweep then
    lapses it to free instead of charging.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        clock: Clock = utc_now
    ):
        self._subscription_repository = subscription_repository
        self._clock = clock

    async def handle(self, command: ToggleAutoRenewCommand) -> Subscription:
        """
        Raises:
            NotFoundError: Subscription does not exist
            ValidationError: Enabling renewal on a free or inactive subscription
        """
        subscription = await load_subscription(self._subscription_repository, command.subscription_id)

        if command.auto_renew and subscription.plan_tier == PlanTier.FREE:
            raise ValidationError(
                message="The free plan cannot auto-renew",
                field="auto_renew",
                value=True,
                constraint="paid_plan",
            )

        if command.auto_renew and not subscription.is_active:
            raise ValidationError(
                message="Only active subscriptions can auto-renew",
                field="status",
                value=subscription.status.value,
                constraint="active",
            )

        if subscription.auto_renew == command.auto_renew:
            return subscription

        updated = await self._subscription_repository.update(
            subscription.id,
            {"auto_renew": command.auto_renew, "updated_at": self._clock()},
        )

        logger.log_business_event(
            event_type="auto_renew.enabled" if command.auto_renew else "auto_renew.disabled",
            description=f"Auto-renew {'enabled' if command.auto_renew else 'disabled'} on {updated.plan_tier.value}",
            entity_id=updated.id,
            entity_type="subscription",
            extra={"end_at": updated.end_at.isoformat() if updated.end_at else None},
        )
        return updated
