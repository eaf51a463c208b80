"""
SQLAlchemy persistence for subscription billing.
"""

from .campaign_repository_impl import CampaignRepositoryImpl
from .models import BillingTransactionModel, CampaignModel, SubscriptionModel
from .subscription_repository_impl import SubscriptionRepositoryImpl

__all__ = [
    "BillingTransactionModel",
    "CampaignModel",
    "CampaignRepositoryImpl",
    "SubscriptionModel",
    "SubscriptionRepositoryImpl",
]
