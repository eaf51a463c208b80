# 📄 File: tenant_billing/modules/subscription_billing/domain/services/entitlement_enforcer.py
# 🧭 Purpose (Layman Explanation):
# When a restaurant drops to a cheaper plan it may have more campaigns running than the new plan allows.
# This file pauses the extra ones, always keeping the most recently created campaigns running.
# 🧪 Purpose (Technical Summary):
# Idempotent enforcement of the per-plan campaign concurrency limit: lists running/scheduled
# campaigns, orders them newest first by (created_at, id) and pauses everything beyond the limit.
# Also answers whether a tenant may activate one more campaign.
# 🔗 Dependencies:
# Subscription / Campaign repositories, PlanCatalog, shared exceptions and logging
# 🔄 Connected Modules / Calls From:
# renewal_engine.py (forced downgrades, plan changes, deferred reconciliation), container (campaign usage)

from dataclasses import dataclass, field
from typing import List, Optional

from tenant_billing.shared.core.exceptions import (
    BillingEngineException,
    EntitlementEnforcementError,
    NotFoundError,
)
from tenant_billing.shared.utils.logging import get_logger

from ..models.campaign import CampaignStatus
from ..models.plan import PlanCatalog, PlanTier
from ..models.subscription import Subscription
from ..repositories.campaign_repository import CampaignRepository
from ..repositories.subscription_repository import SubscriptionRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnforcementResult:
    tenant_id: str
    limit: Optional[int]
    kept: List[str] = field(default_factory=list)
    paused: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CampaignUsage:
    tenant_id: str
    plan_tier: PlanTier
    limit: Optional[int]
    active: int
    allowed: bool


class EntitlementEnforcer:
    """
    Keeps a tenant's active campaigns within its plan's concurrency limit.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        campaign_repository: CampaignRepository,
        plan_catalog: PlanCatalog
    ):
        self.subscription_repository = subscription_repository
        self.campaign_repository = campaign_repository
        self.plan_catalog = plan_catalog

    async def enforce(self, tenant_id: str) -> EnforcementResult:
        """
        Pause the tenant's campaigns that exceed its current plan limit.

        Args:
            tenant_id: Tenant whose campaigns are checked

        Returns:
            EnforcementResult with the ids kept and paused

        Raises:
            NotFoundError: If the tenant has no subscription
            EntitlementEnforcementError: If pausing fails part way
        """
        subscription = await self._load_subscription(tenant_id)
        limit = self.plan_catalog.limit_of(subscription.plan_tier)
        campaigns = await self.campaign_repository.list_active_for_tenant(tenant_id)
        ordered = sorted(
            (campaign for campaign in campaigns if campaign.is_active),
            key=lambda campaign: (campaign.created_at, campaign.id),
            reverse=True,
        )

        if limit is None or len(ordered) <= limit:
            return EnforcementResult(
                tenant_id=tenant_id,
                limit=limit,
                kept=[campaign.id for campaign in ordered],
            )

        kept = ordered[:limit]
        excess = ordered[limit:]
        paused: List[str] = []

        for campaign in excess:
            try:
                await self.campaign_repository.update_status(campaign.id, CampaignStatus.PAUSED)
            except Exception as e:
                raise EntitlementEnforcementError(
                    message=f"Paused {len(paused)} of {len(excess)} campaigns before failing: {e}",
                    tenant_id=tenant_id,
                    details={
                        "paused": paused,
                        "failed_campaign_id": campaign.id,
                        "cause": e.to_dict() if isinstance(e, BillingEngineException) else str(e),
                    },
                ) from e
            paused.append(campaign.id)

        logger.log_business_event(
            event_type="campaigns.paused",
            description=f"Paused {len(paused)} campaigns over the {subscription.plan_tier.value} limit",
            entity_id=tenant_id,
            entity_type="tenant",
            extra={"limit": limit, "paused": paused, "kept": [campaign.id for campaign in kept]},
        )

        return EnforcementResult(
            tenant_id=tenant_id,
            limit=limit,
            kept=[campaign.id for campaign in kept],
            paused=paused,
        )

    async def campaign_usage(self, tenant_id: str) -> CampaignUsage:
        """
        Count the tenant's active campaigns against its plan limit.

        allowed is True when one more campaign may run. Inactive subscriptions
        are never allowed another one.

        Raises:
            NotFoundError: If the tenant has no subscription
        """
        subscription = await self._load_subscription(tenant_id)
        limit = self.plan_catalog.limit_of(subscription.plan_tier)
        active = len([
            campaign for campaign in await self.campaign_repository.list_active_for_tenant(tenant_id)
            if campaign.is_active
        ])
        allowed = subscription.is_active and (limit is None or active < limit)
        return CampaignUsage(
            tenant_id=tenant_id,
            plan_tier=subscription.plan_tier,
            limit=limit,
            active=active,
            allowed=allowed,
        )

    async def can_activate_campaign(self, tenant_id: str) -> bool:
        usage = await self.campaign_usage(tenant_id)
        if not usage.allowed:
            logger.info(
                f"Campaign limit reached for tenant {tenant_id}",
                extra={"plan_tier": usage.plan_tier.value, "limit": usage.limit, "active": usage.active},
            )
        return usage.allowed

    async def _load_subscription(self, tenant_id: str) -> Subscription:
        subscription = await self.subscription_repository.get_by_tenant_id(tenant_id)
        if subscription is None:
            raise NotFoundError(
                message=f"No subscription for tenant {tenant_id}",
                resource_type="subscription",
                resource_id=tenant_id,
            )
        return subscription
