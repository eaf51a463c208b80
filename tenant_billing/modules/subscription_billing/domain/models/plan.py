# 📄 File: tenant_billing/modules/subscription_billing/domain/models/plan.py
# 🧭 Purpose (Layman Explanation):
# Lists the plans a restaurant can be on (free, tier1, tier2), what each costs per month,
# and how many marketing campaigns each plan lets a restaurant run at the same time.
# 🧪 Purpose (Technical Summary):
# PlanTier enumeration, immutable PlanDefinition value objects and the PlanCatalog lookup
# built from settings (prices in Decimal, campaign concurrency limit with None = unbounded).
# 🔗 Dependencies:
# pydantic, decimal, enum, tenant_billing.shared.config, tenant_billing.shared.core.exceptions
# 🔄 Connected Modules / Calls From:
# renewal_engine.py, entitlement_enforcer.py, plan change command handlers, container wiring

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from tenant_billing.shared.config.settings import Settings
from tenant_billing.shared.core.exceptions import ValidationError


class PlanTier(str, Enum):
    """Plan tier enumeration, cheapest first"""
    FREE = "free"
    TIER1 = "tier1"
    TIER2 = "tier2"


class PlanDefinition(BaseModel):
    """
    Price and entitlements of one plan tier.

    campaign_concurrency_limit of None means the tier has no limit.
    """
    model_config = ConfigDict(frozen=True)

    tier: PlanTier
    monthly_price: Decimal = Field(..., ge=0)
    campaign_concurrency_limit: Optional[int] = Field(None, ge=0)

    @property
    def is_free(self) -> bool:
        return self.monthly_price == 0

    @property
    def is_unbounded(self) -> bool:
        return self.campaign_concurrency_limit is None


class PlanCatalog:
    """
    Static tier -> PlanDefinition lookup.
    """

    def __init__(self, plans: Dict[PlanTier, PlanDefinition]):
        missing = [tier.value for tier in PlanTier if tier not in plans]
        if missing:
            raise ValueError(f"Plan catalog is missing tiers: {missing}")
        self._plans = dict(plans)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlanCatalog":
        """Build the catalog from PLAN_* settings."""
        return cls({
            PlanTier.FREE: PlanDefinition(
                tier=PlanTier.FREE,
                monthly_price=Decimal("0"),
                campaign_concurrency_limit=settings.PLAN_FREE_CAMPAIGN_LIMIT,
            ),
            PlanTier.TIER1: PlanDefinition(
                tier=PlanTier.TIER1,
                monthly_price=settings.PLAN_TIER1_PRICE,
                campaign_concurrency_limit=settings.PLAN_TIER1_CAMPAIGN_LIMIT,
            ),
            PlanTier.TIER2: PlanDefinition(
                tier=PlanTier.TIER2,
                monthly_price=settings.PLAN_TIER2_PRICE,
                campaign_concurrency_limit=None,
            ),
        })

    @staticmethod
    def parse_tier(value: Union[str, PlanTier]) -> PlanTier:
        """
        Convert user input into a PlanTier.

        Raises:
            ValidationError: If value is not a known tier
        """
        try:
            return PlanTier(value)
        except ValueError:
            raise ValidationError(
                message=f"Unknown plan tier '{value}'",
                field="target_tier",
                value=value,
                constraint=f"one of {[tier.value for tier in PlanTier]}",
            )

    def get(self, tier: Union[str, PlanTier]) -> PlanDefinition:
        return self._plans[self.parse_tier(tier)]

    def price_of(self, tier: Union[str, PlanTier]) -> Decimal:
        return self.get(tier).monthly_price

    def limit_of(self, tier: Union[str, PlanTier]) -> Optional[int]:
        return self.get(tier).campaign_concurrency_limit

    def is_cheaper(self, target: Union[str, PlanTier], current: Union[str, PlanTier]) -> bool:
        """True when target costs strictly less per month than current."""
        return self.price_of(target) < self.price_of(current)

    def lowers_limit(self, target: Union[str, PlanTier], current: Union[str, PlanTier]) -> bool:
        """
        True when moving from current to target shrinks the campaign limit.

        An unbounded limit counts as infinity.
        """
        target_limit = self.limit_of(target)
        current_limit = self.limit_of(current)
        if target_limit is None:
            return False
        if current_limit is None:
            return True
        return target_limit < current_limit
