"""
Repository interfaces for subscription billing.
"""

from .campaign_repository import CampaignRepository
from .subscription_repository import SubscriptionRepository

__all__ = ["CampaignRepository", "SubscriptionRepository"]
