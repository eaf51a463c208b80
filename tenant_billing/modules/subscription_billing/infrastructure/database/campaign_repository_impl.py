# 📄 File: tenant_billing/modules/subscription_billing/infrastructure/database/campaign_repository_impl.py
# 🧭 Purpose (Layman Explanation):
# Reads a restaurant's running and scheduled campaigns from the database and pauses the ones
# its plan no longer allows.
# 🧪 Purpose (Technical Summary):
# SQLAlchemy implementation of CampaignRepository over the campaigns table.
# 🔗 Dependencies:
# SQLAlchemy, tenant_billing.shared.infrastructure.database.session, shared exceptions
# 🔄 Connected Modules / Calls From:
# entitlement_enforcer.py (via the container)

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select

from tenant_billing.shared.core.exceptions import NotFoundError
from tenant_billing.shared.infrastructure.database.session import DatabaseSessionManager

from ...domain.models.campaign import ACTIVE_CAMPAIGN_STATUSES, Campaign, CampaignStatus
from ...domain.repositories.campaign_repository import CampaignRepository
from .mappers import campaign_to_domain, campaign_to_row, parse_uuid
from .models import CampaignModel

logger = logging.getLogger(__name__)


class CampaignRepositoryImpl(CampaignRepository):
    """
    SQLAlchemy implementation of campaign repository.
    """

    def __init__(self, session_manager: DatabaseSessionManager):
        self.session_manager = session_manager

    async def list_active_for_tenant(self, tenant_id: str) -> List[Campaign]:
        async with self.session_manager.get_read_only_session() as session:
            result = await session.execute(
                select(CampaignModel)
                .where(
                    CampaignModel.tenant_id == tenant_id,
                    CampaignModel.status.in_([status.value for status in ACTIVE_CAMPAIGN_STATUSES]),
                )
                .order_by(CampaignModel.created_at.desc(), CampaignModel.id.desc())
            )
            return [campaign_to_domain(row) for row in result.scalars().all()]

    async def update_status(self, campaign_id: str, status: CampaignStatus) -> Campaign:
        uuid = parse_uuid(campaign_id)
        async with self.session_manager.get_session() as session:
            row = await session.get(CampaignModel, uuid) if uuid else None
            if row is None:
                raise NotFoundError(
                    message=f"Campaign {campaign_id} not found",
                    resource_type="campaign",
                    resource_id=str(campaign_id),
                )
            row.status = CampaignStatus(status).value
            row.updated_at = datetime.now(timezone.utc)
            campaign = campaign_to_domain(row)

        logger.info(f"Campaign {campaign_id} set to {campaign.status.value}")
        return campaign

    async def add(self, campaign: Campaign) -> Campaign:
        """Insert a campaign row (fixtures and imports)."""
        async with self.session_manager.get_session() as session:
            session.add(campaign_to_row(campaign))
        return campaign
