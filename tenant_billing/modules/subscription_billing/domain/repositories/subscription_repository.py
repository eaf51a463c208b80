# 📄 File: tenant_billing/modules/subscription_billing/domain/repositories/subscription_repository.py
# 🧭 Purpose (Layman Explanation):
# Defines what the billing engine can ask of the subscription storage: find subscriptions that
# need a reminder, a renewal or a downgrade, and save a change together with its billing record.
# 🧪 Purpose (Technical Summary):
# Abstract repository interface (SubscriptionStore) for subscription lookups, sweep phase
# queries and atomic state-plus-ledger updates.
# 🔗 Dependencies:
# - abc (Abstract Base Classes)
# - Subscription / Transaction domain models
# 🔄 Connected Modules / Calls From:
# - renewal_engine.py, entitlement_enforcer.py, plan change handlers
# - infrastructure/database/subscription_repository_impl.py (concrete implementation)
# - tests/fakes.py (in-memory implementation)

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from ..models.subscription import Subscription
from ..models.transaction import Transaction

LedgerEntries = Union[Transaction, Sequence[Transaction], None]


def as_ledger_entries(transaction: LedgerEntries) -> List[Transaction]:
    """Normalize the transaction argument of update() to a list."""
    if transaction is None:
        return []
    if isinstance(transaction, Transaction):
        return [transaction]
    return list(transaction)


class SubscriptionRepository(ABC):
    """
    Abstract repository interface for subscription data access operations.

    Every method is its own unit of work; update() commits the subscription
    change and its ledger entries together.
    """

    @abstractmethod
    async def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        """Get subscription by ID."""
        pass

    @abstractmethod
    async def get_by_tenant_id(self, tenant_id: str) -> Optional[Subscription]:
        """Get the tenant's subscription."""
        pass

    @abstractmethod
    async def create_free_subscription(
        self,
        tenant_id: str,
        gateway_customer_ref: Optional[str] = None
    ) -> Subscription:
        """Create the onboarding free subscription for a tenant."""
        pass

    @abstractmethod
    async def list_due_for_renewal(self, cutoff: datetime, max_attempts: int) -> List[Subscription]:
        """Active, auto-renewing paid subscriptions ending on or before cutoff, nothing scheduled."""
        pass

    @abstractmethod
    async def list_due_for_reminder(self, window_start: datetime, window_end: datetime) -> List[Subscription]:
        """Auto-renewing paid subscriptions ending in [window_start, window_end) not yet reminded."""
        pass

    @abstractmethod
    async def list_downgrades_due(self, now: datetime) -> List[Subscription]:
        """Active subscriptions with a scheduled change whose period ended by now."""
        pass

    @abstractmethod
    async def list_lapsed(self, now: datetime) -> List[Subscription]:
        """Active paid subscriptions with auto-renew off whose period ended by now."""
        pass

    @abstractmethod
    async def list_entitlement_sync_pending(self) -> List[Subscription]:
        """Subscriptions whose last entitlement cascade failed."""
        pass

    @abstractmethod
    async def update(
        self,
        subscription_id: str,
        changes: Dict[str, Any],
        transaction: LedgerEntries = None
    ) -> Subscription:
        """
        Apply changes and append zero or more ledger entries in one atomic write.

        Entries are stored in the order given. Either all of them and the
        subscription change are committed, or nothing is.

        Raises:
            NotFoundError: If the subscription does not exist
        """
        pass

    @abstractmethod
    async def list_transactions(self, subscription_id: str) -> List[Transaction]:
        """Ledger entries for a subscription, oldest first."""
        pass
