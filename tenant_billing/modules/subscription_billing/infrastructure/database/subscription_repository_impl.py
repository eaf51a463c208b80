# 📄 File: tenant_billing/modules/subscription_billing/infrastructure/database/subscription_repository_impl.py
# 🧭 Purpose (Layman Explanation):
# This file handles the actual database work for subscriptions: finding the ones the daily sweep must
# look at, and saving each change together with the billing record that explains it.
# 🧪 Purpose (Technical Summary):
# SQLAlchemy implementation of SubscriptionRepository. Each call is its own unit of work obtained
# from DatabaseSessionManager; update() locks the row, re-validates the domain snapshot and inserts
# the ledger row in the same transaction.
# 🔗 Dependencies:
# SQLAlchemy, tenant_billing.shared.infrastructure.database.session, shared exceptions, logging
# 🔄 Connected Modules / Calls From:
# renewal_engine.py, entitlement_enforcer.py, plan change handlers (via the container)

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select

from tenant_billing.shared.core.exceptions import ConflictError, NotFoundError
from tenant_billing.shared.infrastructure.database.session import DatabaseSessionManager

from ...domain.models.plan import PlanTier
from ...domain.models.subscription import Subscription, SubscriptionStatus
from ...domain.models.transaction import Transaction
from ...domain.repositories.subscription_repository import (
    LedgerEntries,
    SubscriptionRepository,
    as_ledger_entries,
)
from .mappers import (
    apply_subscription_to_row,
    as_utc,
    parse_uuid,
    subscription_to_domain,
    subscription_to_row,
    transaction_to_domain,
    transaction_to_row,
)
from .models import BillingTransactionModel, SubscriptionModel

logger = logging.getLogger(__name__)


class SubscriptionRepositoryImpl(SubscriptionRepository):
    """
    SQLAlchemy implementation of subscription repository.
    """

    def __init__(self, session_manager: DatabaseSessionManager):
        """
        Initialize repository with the session manager.

        Args:
            session_manager: Initialized DatabaseSessionManager
        """
        self.session_manager = session_manager

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        uuid = parse_uuid(subscription_id)
        if uuid is None:
            return None
        async with self.session_manager.get_read_only_session() as session:
            row = await session.get(SubscriptionModel, uuid)
            return subscription_to_domain(row) if row else None

    async def get_by_tenant_id(self, tenant_id: str) -> Optional[Subscription]:
        async with self.session_manager.get_read_only_session() as session:
            result = await session.execute(
                select(SubscriptionModel).where(SubscriptionModel.tenant_id == tenant_id)
            )
            row = result.scalar_one_or_none()
            return subscription_to_domain(row) if row else None

    async def create_free_subscription(
        self,
        tenant_id: str,
        gateway_customer_ref: Optional[str] = None
    ) -> Subscription:
        subscription = Subscription.create_free_subscription(
            tenant_id=tenant_id,
            gateway_customer_ref=gateway_customer_ref,
        )
        async with self.session_manager.get_session() as session:
            existing = await session.execute(
                select(SubscriptionModel.id).where(SubscriptionModel.tenant_id == tenant_id)
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(
                    message=f"Tenant {tenant_id} already has a subscription",
                    resource="subscription",
                )
            session.add(subscription_to_row(subscription))

        logger.info(f"Created free subscription {subscription.id} for tenant {tenant_id}")
        return subscription

    # =========================================================================
    # SWEEP QUERIES
    # =========================================================================

    async def _list(self, *criteria) -> List[Subscription]:
        async with self.session_manager.get_read_only_session() as session:
            result = await session.execute(
                select(SubscriptionModel)
                .where(*criteria)
                .order_by(SubscriptionModel.end_at, SubscriptionModel.id)
            )
            return [subscription_to_domain(row) for row in result.scalars().all()]

    def _billable(self):
        return (
            SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            SubscriptionModel.auto_renew.is_(True),
            SubscriptionModel.plan_tier != PlanTier.FREE.value,
            SubscriptionModel.end_at.is_not(None),
        )

    async def list_due_for_renewal(self, cutoff: datetime, max_attempts: int) -> List[Subscription]:
        return await self._list(
            *self._billable(),
            SubscriptionModel.scheduled_plan_change.is_(None),
            SubscriptionModel.renewal_attempts < max_attempts,
            SubscriptionModel.end_at <= as_utc(cutoff),
        )

    async def list_due_for_reminder(self, window_start: datetime, window_end: datetime) -> List[Subscription]:
        return await self._list(
            *self._billable(),
            SubscriptionModel.renewal_reminder_sent.is_(False),
            or_(
                SubscriptionModel.scheduled_plan_change.is_(None),
                SubscriptionModel.scheduled_plan_change != PlanTier.FREE.value,
            ),
            SubscriptionModel.end_at >= as_utc(window_start),
            SubscriptionModel.end_at < as_utc(window_end),
        )

    async def list_downgrades_due(self, now: datetime) -> List[Subscription]:
        return await self._list(
            SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            SubscriptionModel.scheduled_plan_change.is_not(None),
            SubscriptionModel.end_at <= as_utc(now),
        )

    async def list_lapsed(self, now: datetime) -> List[Subscription]:
        return await self._list(
            SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            SubscriptionModel.auto_renew.is_(False),
            SubscriptionModel.plan_tier != PlanTier.FREE.value,
            SubscriptionModel.scheduled_plan_change.is_(None),
            SubscriptionModel.end_at <= as_utc(now),
        )

    async def list_entitlement_sync_pending(self) -> List[Subscription]:
        async with self.session_manager.get_read_only_session() as session:
            result = await session.execute(
                select(SubscriptionModel)
                .where(SubscriptionModel.entitlement_sync_pending.is_(True))
                .order_by(SubscriptionModel.updated_at, SubscriptionModel.id)
            )
            return [subscription_to_domain(row) for row in result.scalars().all()]

    # =========================================================================
    # WRITES
    # =========================================================================

    async def update(
        self,
        subscription_id: str,
        changes: Dict[str, Any],
        transaction: LedgerEntries = None
    ) -> Subscription:
        entries = as_ledger_entries(transaction)
        uuid = parse_uuid(subscription_id)
        async with self.session_manager.get_session() as session:
            row = await session.get(SubscriptionModel, uuid, with_for_update=True) if uuid else None
            if row is None:
                raise NotFoundError(
                    message=f"Subscription {subscription_id} not found",
                    resource_type="subscription",
                    resource_id=str(subscription_id),
                )

            changes = {"updated_at": datetime.now(timezone.utc), **changes}
            updated = subscription_to_domain(row).with_changes(changes)
            apply_subscription_to_row(updated, row)

            for entry in entries:
                session.add(transaction_to_row(entry))

        logger.debug(
            f"Updated subscription {subscription_id}: {sorted(changes)}"
            + (f" (+{[entry.type.value for entry in entries]})" if entries else "")
        )
        return updated

    async def list_transactions(self, subscription_id: str) -> List[Transaction]:
        uuid = parse_uuid(subscription_id)
        if uuid is None:
            return []
        async with self.session_manager.get_read_only_session() as session:
            result = await session.execute(
                select(BillingTransactionModel)
                .where(BillingTransactionModel.subscription_id == uuid)
                .order_by(BillingTransactionModel.created_at, BillingTransactionModel.id)
            )
            return [transaction_to_domain(row) for row in result.scalars().all()]

    async def add(self, subscription: Subscription) -> Subscription:
        """Insert a fully specified subscription (imports and fixtures)."""
        async with self.session_manager.get_session() as session:
            session.add(subscription_to_row(subscription))
        return subscription
