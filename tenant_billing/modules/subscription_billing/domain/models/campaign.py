# 📄 File: tenant_billing/modules/subscription_billing/domain/models/campaign.py
# 🧭 Purpose (Layman Explanation):
# A restaurant's marketing campaign, as far as billing cares: is it running (or about to run),
# and when was it created. Billing only ever pauses campaigns, it never creates or sends them.
# 🧪 Purpose (Technical Summary):
# Read model of the campaigns owned by the marketing subsystem.
# 🔗 Dependencies:
# pydantic, datetime, enum
# 🔄 Connected Modules / Calls From:
# entitlement_enforcer.py, campaign repositories

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count against the plan's concurrency limit
ACTIVE_CAMPAIGN_STATUSES = (CampaignStatus.RUNNING, CampaignStatus.SCHEDULED)


class Campaign(BaseModel):
    id: str
    tenant_id: str
    name: Optional[str] = None
    status: CampaignStatus
    created_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_CAMPAIGN_STATUSES
