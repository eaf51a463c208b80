"""
Domain models for subscription billing.
"""

from .campaign import ACTIVE_CAMPAIGN_STATUSES, Campaign, CampaignStatus
from .plan import PlanCatalog, PlanDefinition, PlanTier
from .subscription import Subscription, SubscriptionStatus
from .sweep_report import SweepError, SweepReport
from .transaction import Transaction, TransactionStatus, TransactionType

__all__ = [
    "ACTIVE_CAMPAIGN_STATUSES",
    "Campaign",
    "CampaignStatus",
    "PlanCatalog",
    "PlanDefinition",
    "PlanTier",
    "Subscription",
    "SubscriptionStatus",
    "SweepError",
    "SweepReport",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
