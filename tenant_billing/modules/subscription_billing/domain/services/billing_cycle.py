# 📄 File: tenant_billing/modules/subscription_billing/domain/services/billing_cycle.py
# 🧭 Purpose (Layman Explanation):
# The calendar rules of billing: when a paid plan is due to renew, when the "renews soon" reminder
# should go out, when a scheduled cheaper plan should start, and when the next paid month ends.
# 🧪 Purpose (Technical Summary):
# Pure eligibility predicates and date arithmetic over Subscription snapshots. The clock is always
# passed in; nothing here reads the system time or touches storage.
# 🔗 Dependencies:
# datetime, typing, Subscription / PlanTier models, tenant_billing.shared.config
# 🔄 Connected Modules / Calls From:
# renewal_engine.py (phase eligibility), subscription repositories (query bounds), container wiring

from datetime import datetime, timedelta, timezone
from typing import Callable, Tuple

from tenant_billing.shared.config.settings import Settings

from ..models.plan import PlanTier
from ..models.subscription import Subscription

# Injected time source, returns an aware UTC datetime
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BillingCycleCalculator:
    """
    Billing-cycle eligibility rules.

    A subscription is due for renewal when it is active, auto-renewing, on a paid tier,
    has no scheduled change, has attempts left, and its period ends within the renewal
    lead time. Reminders go out once, when the period ends in
    [now + reminder_days_before, now + reminder_days_before + 1 day).
    """

    def __init__(
        self,
        max_attempts: int = 1,
        cycle_days: int = 30,
        renewal_lead_days: int = 1,
        reminder_days_before: int = 3
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.cycle_length = timedelta(days=cycle_days)
        self.renewal_lead = timedelta(days=renewal_lead_days)
        self.reminder_lead = timedelta(days=reminder_days_before)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BillingCycleCalculator":
        return cls(
            max_attempts=settings.RENEWAL_MAX_ATTEMPTS,
            cycle_days=settings.RENEWAL_CYCLE_DAYS,
            renewal_lead_days=settings.RENEWAL_LEAD_DAYS,
            reminder_days_before=settings.REMINDER_DAYS_BEFORE,
        )

    # =========================================================================
    # QUERY BOUNDS
    # =========================================================================

    def renewal_cutoff(self, now: datetime) -> datetime:
        """Latest end_at that is renewed in a sweep running at now."""
        return now + self.renewal_lead

    def reminder_window(self, now: datetime) -> Tuple[datetime, datetime]:
        """Half-open [start, end) window of end_at values that get a reminder."""
        start = now + self.reminder_lead
        return start, start + timedelta(days=1)

    def next_cycle_end(self, now: datetime) -> datetime:
        return now + self.cycle_length

    # =========================================================================
    # ELIGIBILITY
    # =========================================================================

    def _is_billable(self, subscription: Subscription) -> bool:
        return (
            subscription.auto_renew
            and subscription.plan_tier != PlanTier.FREE
            and subscription.is_active
            and subscription.end_at is not None
        )

    def is_due_for_renewal(self, subscription: Subscription, now: datetime) -> bool:
        if not self._is_billable(subscription):
            return False
        if subscription.scheduled_plan_change is not None:
            return False
        if subscription.renewal_attempts >= self.max_attempts:
            return False
        # At most one charge attempt per calendar day for the same cycle
        if subscription.renewal_attempts > 0 and subscription.last_renewal_attempt_at is not None:
            if subscription.last_renewal_attempt_at.date() >= now.date():
                return False
        return subscription.end_at <= self.renewal_cutoff(now)

    def is_due_for_reminder(self, subscription: Subscription, now: datetime) -> bool:
        if not self._is_billable(subscription) or subscription.renewal_reminder_sent:
            return False
        # Nothing is charged when the period ends in a move to free
        if subscription.scheduled_plan_change == PlanTier.FREE:
            return False
        window_start, window_end = self.reminder_window(now)
        return window_start <= subscription.end_at < window_end

    def has_lapsed(self, subscription: Subscription, now: datetime) -> bool:
        return (
            not subscription.auto_renew
            and subscription.plan_tier != PlanTier.FREE
            and subscription.is_active
            and subscription.scheduled_plan_change is None
            and subscription.end_at is not None
            and subscription.end_at <= now
        )

    def is_downgrade_due(self, subscription: Subscription, now: datetime) -> bool:
        return (
            subscription.scheduled_plan_change is not None
            and subscription.is_active
            and subscription.end_at is not None
            and subscription.end_at <= now
        )
