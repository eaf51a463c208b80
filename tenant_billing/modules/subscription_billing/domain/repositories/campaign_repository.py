# 📄 File: tenant_billing/modules/subscription_billing/domain/repositories/campaign_repository.py
# 🧭 Purpose (Layman Explanation):
# The two things billing may do with a restaurant's campaigns: list the ones that are running
# or scheduled, and pause one.
# 🧪 Purpose (Technical Summary):
# Abstract repository interface (CampaignStore) consumed by the entitlement enforcer.
# 🔗 Dependencies:
# - abc (Abstract Base Classes)
# - Campaign domain model
# 🔄 Connected Modules / Calls From:
# - entitlement_enforcer.py
# - infrastructure/database/campaign_repository_impl.py, tests/fakes.py

from abc import ABC, abstractmethod
from typing import List

from ..models.campaign import Campaign, CampaignStatus


class CampaignRepository(ABC):

    @abstractmethod
    async def list_active_for_tenant(self, tenant_id: str) -> List[Campaign]:
        """Running or scheduled campaigns of a tenant, newest first."""
        pass

    @abstractmethod
    async def update_status(self, campaign_id: str, status: CampaignStatus) -> Campaign:
        """Set a campaign's status."""
        pass
