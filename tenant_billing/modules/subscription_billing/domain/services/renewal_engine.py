# 📄 File: tenant_billing/modules/subscription_billing/domain/services/renewal_engine.py
# 🧭 Purpose (Layman Explanation):
# The heart of billing. Once a day it reminds restaurants their plan renews soon, switches restaurants
# to the cheaper plan they asked for, charges the saved card of every plan that is ending, and moves
# restaurants whose card fails (or who switched renewal off) back to the free plan, pausing campaigns
# the free plan doesn't allow.
# 🧪 Purpose (Technical Summary):
# Per-subscription renewal state machine and the daily sweep: deferred entitlement reconciliation,
# then reminders, scheduled downgrades, lapses and renewals, each subscription fault-isolated. Every state
# change is written together with its ledger entry; charges carry a per-cycle idempotency key.
# 🔗 Dependencies:
# Subscription repository, payment gateway port, EntitlementEnforcer, PlanCatalog,
# BillingCycleCalculator, notification publisher, shared exceptions and structured logging
# 🔄 Connected Modules / Calls From:
# application/scheduler.py (run_sweep), container wiring, Celery renewal task, API router

from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4

from tenant_billing.shared.core.exceptions import (
    BillingEngineException,
    CardNotFoundError,
    EntitlementEnforcementError,
    PaymentGatewayError,
)
from tenant_billing.shared.events.base import DomainEvent
from tenant_billing.shared.utils.logging import get_logger, log_context

from ..events.billing_events import (
    PlanChangeApplied,
    RenewalPaymentFailed,
    RenewalReminderDue,
    RenewalSucceeded,
    SubscriptionDegraded,
)
from ..events.publisher import LoggingNotificationPublisher, NotificationPublisher
from ..gateways.payment_gateway import ChargeResult, PaymentGatewayClient
from ..models.plan import PlanCatalog, PlanTier
from ..models.subscription import Subscription
from ..models.sweep_report import SweepReport
from ..models.transaction import Transaction, TransactionStatus, TransactionType
from ..repositories.subscription_repository import SubscriptionRepository
from .billing_cycle import BillingCycleCalculator, Clock, utc_now
from .entitlement_enforcer import EntitlementEnforcer

logger = get_logger(__name__)

ZERO = Decimal("0")


class RenewalEngine:
    """
    Renewal / downgrade state machine for tenant subscriptions.

    All public operations are safe to re-run: a second sweep with no elapsed time
    finds nothing eligible and writes nothing.
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        payment_gateway: PaymentGatewayClient,
        entitlement_enforcer: EntitlementEnforcer,
        plan_catalog: PlanCatalog,
        billing_cycle: BillingCycleCalculator,
        notification_publisher: Optional[NotificationPublisher] = None,
        clock: Clock = utc_now,
        simulate_payment_failure: bool = False
    ):
        self.subscription_repository = subscription_repository
        self.payment_gateway = payment_gateway
        self.entitlement_enforcer = entitlement_enforcer
        self.plan_catalog = plan_catalog
        self.billing_cycle = billing_cycle
        self.notification_publisher = notification_publisher or LoggingNotificationPublisher()
        self.clock = clock
        self.simulate_payment_failure = simulate_payment_failure

    # =========================================================================
    # SWEEP
    # =========================================================================

    async def run_sweep(self) -> SweepReport:
        """
        Run one full billing sweep.

        Order: deferred entitlement reconciliation, reminders, scheduled
        downgrades, lapses, renewals. The clock is read once.

        Returns:
            SweepReport with per-phase counters and isolated errors
        """
        now = self.clock()
        report = SweepReport(sweep_id=str(uuid4()), started_at=now)

        with log_context(sweep_id=report.sweep_id, correlation_id=report.sweep_id):
            logger.info("Renewal sweep started", extra={"now": now.isoformat()})

            await self.reconcile_entitlements(report)
            await self.send_reminders(now, report)
            await self.apply_scheduled_downgrades(now, report)
            await self.apply_lapses(now, report)
            await self.process_renewals(now, report)

            report.finished_at = self.clock()
            logger.info(
                "Renewal sweep finished",
                extra=report.model_dump(mode="json", exclude={"errors"}) | {"error_count": report.error_count},
            )

        return report

    async def _list_for_phase(
        self,
        phase: str,
        report: SweepReport,
        query: Callable[[], Awaitable[List[Subscription]]]
    ) -> List[Subscription]:
        try:
            return await query()
        except Exception as e:
            logger.error(f"Could not load subscriptions for phase {phase}: {e}", exc_info=True)
            report.record_error(phase, e)
            return []

    async def _isolated(
        self,
        phase: str,
        subscription: Subscription,
        report: SweepReport,
        operation: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Run one subscription's step; any exception is logged and counted, never raised."""
        with log_context(
            sweep_id=report.sweep_id,
            tenant_id=subscription.tenant_id,
            correlation_id=report.sweep_id,
        ):
            try:
                return await operation()
            except Exception as e:
                logger.error(
                    f"{phase} failed for subscription {subscription.id}: {e}",
                    extra={"phase": phase, "subscription_id": subscription.id},
                    exc_info=True,
                )
                report.record_error(phase, e, subscription.id, subscription.tenant_id)
                return None

    # =========================================================================
    # PRE-STEP: DEFERRED ENTITLEMENT RECONCILIATION
    # =========================================================================

    async def reconcile_entitlements(self, report: Optional[SweepReport] = None) -> SweepReport:
        """Re-run the campaign cascade for subscriptions flagged entitlement_sync_pending."""
        report = report or SweepReport(sweep_id=str(uuid4()), started_at=self.clock())
        pending = await self._list_for_phase(
            "reconcile", report, self.subscription_repository.list_entitlement_sync_pending
        )

        for subscription in pending:
            async def reconcile(subscription=subscription):
                await self.entitlement_enforcer.enforce(subscription.tenant_id)
                await self.subscription_repository.update(
                    subscription.id, {"entitlement_sync_pending": False}
                )
                return True

            if await self._isolated("reconcile", subscription, report, reconcile):
                report.entitlements_reconciled += 1

        return report

    # =========================================================================
    # PHASE A: REMINDERS
    # =========================================================================

    async def send_reminders(self, now: datetime, report: Optional[SweepReport] = None) -> SweepReport:
        """Flag and announce subscriptions whose paid period ends in the reminder window."""
        report = report or SweepReport(sweep_id=str(uuid4()), started_at=now)
        window_start, window_end = self.billing_cycle.reminder_window(now)
        candidates = await self._list_for_phase(
            "reminders",
            report,
            lambda: self.subscription_repository.list_due_for_reminder(window_start, window_end),
        )

        for subscription in candidates:
            if not self.billing_cycle.is_due_for_reminder(subscription, now):
                continue
            sent = await self._isolated(
                "reminders", subscription, report,
                lambda subscription=subscription: self._send_reminder(subscription),
            )
            if sent:
                report.reminders_sent += 1

        return report

    async def _send_reminder(self, subscription: Subscription) -> bool:
        updated = await self.subscription_repository.update(
            subscription.id, {"renewal_reminder_sent": True}
        )
        # A pending change decides what is charged at period end
        tier = updated.scheduled_plan_change or updated.plan_tier
        await self._publish(RenewalReminderDue(
            subscription_id=updated.id,
            tenant_id=updated.tenant_id,
            plan_tier=tier.value,
            amount=self.plan_catalog.price_of(tier),
            currency=updated.currency,
            renews_at=updated.end_at,
        ))
        return True

    # =========================================================================
    # PHASE B: SCHEDULED DOWNGRADES
    # =========================================================================

    async def apply_scheduled_downgrades(self, now: datetime, report: Optional[SweepReport] = None) -> SweepReport:
        """Apply every scheduled plan change whose current period has ended."""
        report = report or SweepReport(sweep_id=str(uuid4()), started_at=now)
        candidates = await self._list_for_phase(
            "downgrades",
            report,
            lambda: self.subscription_repository.list_downgrades_due(now),
        )

        for subscription in candidates:
            if not self.billing_cycle.is_downgrade_due(subscription, now):
                continue
            await self._isolated(
                "downgrades", subscription, report,
                lambda subscription=subscription: self._apply_scheduled_downgrade(subscription, now, report),
            )

        return report

    async def _apply_scheduled_downgrade(self, subscription: Subscription, now: datetime, report: SweepReport) -> None:
        target = subscription.scheduled_plan_change
        plan = self.plan_catalog.get(target)

        if plan.is_free:
            await self.apply_plan_change(subscription, target, ZERO, None)
            report.downgrades_applied += 1
            return

        charge = await self.process_charge(subscription, plan.monthly_price, purpose="plan_change")
        idempotency_key = self.charge_idempotency_key("plan_change", subscription)

        if charge.success:
            payment = Transaction(
                subscription_id=subscription.id,
                type=TransactionType.PAYMENT,
                amount=plan.monthly_price,
                currency=subscription.currency,
                gateway_ref=charge.gateway_order.order_id,
                status=TransactionStatus.COMPLETED,
                idempotency_key=idempotency_key,
                created_at=now,
            )
            await self.apply_plan_change(
                subscription,
                target,
                plan.monthly_price,
                self.billing_cycle.next_cycle_end(now),
                transaction=payment,
                now=now,
            )
            report.downgrades_applied += 1
            return

        failed_payment = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.PAYMENT,
            amount=plan.monthly_price,
            currency=subscription.currency,
            status=TransactionStatus.FAILED,
            idempotency_key=idempotency_key,
            error_message=charge.error_message,
            created_at=now,
        )
        updated = await self._write_free_tier(subscription, now, preceding=[failed_payment])
        report.scheduled_changes_failed += 1
        await self._publish(RenewalPaymentFailed(
            subscription_id=subscription.id,
            tenant_id=subscription.tenant_id,
            plan_tier=target.value,
            amount=plan.monthly_price,
            currency=subscription.currency,
            error_message=charge.error_message or "Payment failed",
            renewal_attempts=subscription.renewal_attempts,
        ))
        await self._finish_degrade(
            updated,
            subscription.plan_tier,
            reason=f"Payment for scheduled change to {target.value} failed: {charge.error_message}",
        )
        report.degraded += 1

    # =========================================================================
    # PHASE B2: LAPSES
    # =========================================================================

    async def apply_lapses(self, now: datetime, report: Optional[SweepReport] = None) -> SweepReport:
        """Move paid subscriptions with auto-renew off to free once their period has ended."""
        report = report or SweepReport(sweep_id=str(uuid4()), started_at=now)
        candidates = await self._list_for_phase(
            "lapses",
            report,
            lambda: self.subscription_repository.list_lapsed(now),
        )

        for subscription in candidates:
            if not self.billing_cycle.has_lapsed(subscription, now):
                continue
            lapsed = await self._isolated(
                "lapses", subscription, report,
                lambda subscription=subscription: self.degrade_to_free(
                    subscription, reason="Auto-renew is off and the paid period ended", now=now
                ),
            )
            if lapsed:
                report.lapsed += 1

        return report

    # =========================================================================
    # PHASE C: RENEWALS
    # =========================================================================

    async def process_renewals(self, now: datetime, report: Optional[SweepReport] = None) -> SweepReport:
        """Charge every auto-renewing paid subscription whose period ends by the cutoff."""
        report = report or SweepReport(sweep_id=str(uuid4()), started_at=now)
        cutoff = self.billing_cycle.renewal_cutoff(now)
        candidates = await self._list_for_phase(
            "renewals",
            report,
            lambda: self.subscription_repository.list_due_for_renewal(cutoff, self.billing_cycle.max_attempts),
        )

        for subscription in candidates:
            if not self.billing_cycle.is_due_for_renewal(subscription, now):
                continue
            await self._isolated(
                "renewals", subscription, report,
                lambda subscription=subscription: self._renew(subscription, now, report),
            )

        return report

    async def _renew(self, subscription: Subscription, now: datetime, report: SweepReport) -> None:
        price = self.plan_catalog.price_of(subscription.plan_tier)
        idempotency_key = self.charge_idempotency_key("renewal", subscription)
        charge = await self.process_charge(subscription, price, purpose="renewal")

        if charge.success:
            new_end_at = self.billing_cycle.next_cycle_end(now)
            renewal = Transaction(
                subscription_id=subscription.id,
                type=TransactionType.RENEWAL,
                amount=price,
                currency=subscription.currency,
                gateway_ref=charge.gateway_order.order_id,
                status=TransactionStatus.COMPLETED,
                idempotency_key=idempotency_key,
                created_at=now,
            )
            updated = await self.subscription_repository.update(
                subscription.id,
                {
                    "end_at": new_end_at,
                    "next_billing_at": new_end_at,
                    "renewal_attempts": 0,
                    "renewal_reminder_sent": False,
                    "last_renewal_attempt_at": now,
                    "price_paid": price,
                    "updated_at": now,
                },
                renewal,
            )
            report.renewals_succeeded += 1
            logger.log_business_event(
                event_type="renewal.succeeded",
                description=f"Renewed {updated.plan_tier.value} until {new_end_at.isoformat()}",
                entity_id=updated.id,
                entity_type="subscription",
                extra={"amount": str(price), "gateway_ref": renewal.gateway_ref},
            )
            await self._publish(RenewalSucceeded(
                subscription_id=updated.id,
                tenant_id=updated.tenant_id,
                plan_tier=updated.plan_tier.value,
                amount=price,
                currency=updated.currency,
                gateway_ref=renewal.gateway_ref,
                new_end_at=new_end_at,
            ))
            return

        attempts = subscription.renewal_attempts + 1
        exhausted = attempts >= self.billing_cycle.max_attempts
        failed_renewal = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.RENEWAL_FAILED,
            amount=price,
            currency=subscription.currency,
            status=TransactionStatus.FAILED,
            idempotency_key=idempotency_key,
            error_message=charge.error_message,
            created_at=now,
        )

        # The last allowed attempt and the move to free are one write
        if exhausted:
            updated = await self._write_free_tier(
                subscription, now, preceding=[failed_renewal], last_renewal_attempt_at=now
            )
        else:
            updated = await self.subscription_repository.update(
                subscription.id,
                {
                    "renewal_attempts": attempts,
                    "last_renewal_attempt_at": now,
                    "updated_at": now,
                },
                failed_renewal,
            )
        report.renewals_failed += 1
        logger.log_business_event(
            event_type="renewal.failed",
            description=f"Renewal charge failed (attempt {attempts}): {charge.error_message}",
            entity_id=updated.id,
            entity_type="subscription",
            extra={"amount": str(price), "renewal_attempts": attempts},
        )
        await self._publish(RenewalPaymentFailed(
            subscription_id=updated.id,
            tenant_id=updated.tenant_id,
            plan_tier=subscription.plan_tier.value,
            amount=price,
            currency=updated.currency,
            error_message=charge.error_message or "Payment failed",
            renewal_attempts=attempts,
        ))

        if exhausted:
            await self._finish_degrade(
                updated,
                subscription.plan_tier,
                reason=f"Renewal payment failed after {attempts} attempt(s): {charge.error_message}",
            )
            report.degraded += 1

    # =========================================================================
    # CHARGING
    # =========================================================================

    @staticmethod
    def charge_idempotency_key(purpose: str, subscription: Subscription) -> str:
        """Stable per subscription, purpose and billing date, so reruns of a cycle reuse it."""
        return f"{purpose}:{subscription.id}:{subscription.billing_date_key}"

    async def process_charge(
        self,
        subscription: Subscription,
        amount: Decimal,
        purpose: str = "renewal"
    ) -> ChargeResult:
        """
        Charge the tenant's default card once.

        Every error raised while talking to the gateway comes back as a failed
        ChargeResult, so the caller always records the attempt.

        Args:
            subscription: Subscription being charged
            amount: Amount in the subscription currency
            purpose: Short label used in the idempotency key and description

        Returns:
            ChargeResult
        """
        if self.simulate_payment_failure:
            logger.warning(
                "Payment failure simulation enabled, charge not attempted",
                extra={"subscription_id": subscription.id, "purpose": purpose},
            )
            return ChargeResult.failed("Simulated payment failure")

        customer_ref = subscription.gateway_customer_ref
        if not customer_ref:
            return ChargeResult.failed("Subscription has no payment customer")

        idempotency_key = self.charge_idempotency_key(purpose, subscription)

        try:
            card = await self.payment_gateway.get_default_card(customer_ref)
            if card is None:
                raise CardNotFoundError(operation="cards", details={"customer_ref": customer_ref})

            token = await self.payment_gateway.tokenize_card(
                customer_ref, card.card_id, card.cardholder_name
            )
            order = await self.payment_gateway.charge(
                customer_ref=customer_ref,
                token=token,
                amount=amount,
                currency=subscription.currency,
                description=f"Monthly subscription ({purpose}) {subscription.id}",
                idempotency_key=idempotency_key,
            )
        except PaymentGatewayError as e:
            logger.warning(
                f"Charge failed: {e.message}",
                extra={
                    "subscription_id": subscription.id,
                    "purpose": purpose,
                    "error_code": e.error_code,
                    "idempotency_key": idempotency_key,
                },
            )
            return ChargeResult.failed(e.message)
        except Exception as e:
            logger.error(
                f"Unexpected error while charging: {e}",
                extra={
                    "subscription_id": subscription.id,
                    "purpose": purpose,
                    "idempotency_key": idempotency_key,
                },
                exc_info=True,
            )
            return ChargeResult.failed(f"Unexpected payment error: {str(e) or type(e).__name__}")

        logger.info(
            f"Charge completed: order {order.order_id}",
            extra={"subscription_id": subscription.id, "purpose": purpose, "amount": str(amount)},
        )
        return ChargeResult.succeeded(order)

    # =========================================================================
    # PLAN TRANSITIONS
    # =========================================================================

    async def degrade_to_free(
        self,
        subscription: Subscription,
        reason: str,
        now: Optional[datetime] = None
    ) -> Subscription:
        """
        Force a subscription onto the free tier and cascade entitlements.

        The plan write and its downgrade ledger entry are committed together; the
        campaign cascade is awaited afterwards. A failed cascade is flagged for the
        next sweep instead of undoing the downgrade.
        """
        now = now or self.clock()
        updated = await self._write_free_tier(subscription, now)
        await self._finish_degrade(updated, subscription.plan_tier, reason)
        return updated

    async def _write_free_tier(
        self,
        subscription: Subscription,
        now: datetime,
        preceding: Sequence[Transaction] = (),
        **extra_changes: Any
    ) -> Subscription:
        """Commit the free-tier fields, the preceding ledger entries and the downgrade entry together."""
        downgrade = Transaction(
            subscription_id=subscription.id,
            type=TransactionType.DOWNGRADE,
            amount=ZERO,
            currency=subscription.currency,
            status=TransactionStatus.COMPLETED,
            created_at=now,
        )
        return await self.subscription_repository.update(
            subscription.id,
            {
                "plan_tier": PlanTier.FREE,
                "price_paid": ZERO,
                "auto_renew": False,
                "renewal_attempts": 0,
                "renewal_reminder_sent": False,
                "scheduled_plan_change": None,
                "end_at": None,
                "next_billing_at": None,
                "updated_at": now,
                **extra_changes,
            },
            [*preceding, downgrade],
        )

    async def _finish_degrade(self, updated: Subscription, previous_tier: PlanTier, reason: str) -> None:
        paused = await self._enforce_entitlements(updated)

        logger.log_business_event(
            event_type="subscription.degraded",
            description=f"Degraded {previous_tier.value} -> free: {reason}",
            entity_id=updated.id,
            entity_type="subscription",
            extra={"campaigns_paused": paused},
        )
        await self._publish(SubscriptionDegraded(
            subscription_id=updated.id,
            tenant_id=updated.tenant_id,
            previous_tier=previous_tier.value,
            reason=reason,
            campaigns_paused=paused,
        ))

    async def apply_plan_change(
        self,
        subscription: Subscription,
        target_tier: Union[str, PlanTier],
        price: Decimal,
        new_end_at: Optional[datetime],
        transaction: Optional[Transaction] = None,
        now: Optional[datetime] = None
    ) -> Subscription:
        """
        Move a subscription onto target_tier.

        Args:
            subscription: Current snapshot
            target_tier: Tier to switch to
            price: Price paid for the new period (0 for free)
            new_end_at: End of the new period (None for free)
            transaction: Ledger entry to commit with the change; a free target
                records a downgrade entry when none is given
            now: Timestamp for updated_at

        Returns:
            The updated subscription
        """
        now = now or self.clock()
        target = self.plan_catalog.parse_tier(target_tier)
        previous_tier = subscription.plan_tier

        if transaction is None and target == PlanTier.FREE:
            transaction = Transaction(
                subscription_id=subscription.id,
                type=TransactionType.DOWNGRADE,
                amount=ZERO,
                currency=subscription.currency,
                status=TransactionStatus.COMPLETED,
                created_at=now,
            )

        changes: Dict[str, Any] = {
            "plan_tier": target,
            "price_paid": price,
            "end_at": new_end_at,
            "next_billing_at": new_end_at,
            "auto_renew": target != PlanTier.FREE,
            "scheduled_plan_change": None,
            "renewal_attempts": 0,
            "renewal_reminder_sent": False,
            "updated_at": now,
        }
        updated = await self.subscription_repository.update(subscription.id, changes, transaction)

        if self.plan_catalog.lowers_limit(target, previous_tier):
            await self._enforce_entitlements(updated)

        logger.log_business_event(
            event_type="plan_change.applied",
            description=f"Plan changed {previous_tier.value} -> {target.value}",
            entity_id=updated.id,
            entity_type="subscription",
            extra={"price": str(price)},
        )
        await self._publish(PlanChangeApplied(
            subscription_id=updated.id,
            tenant_id=updated.tenant_id,
            previous_tier=previous_tier.value,
            new_tier=target.value,
            amount=price,
            new_end_at=new_end_at,
        ))
        return updated

    async def _enforce_entitlements(self, subscription: Subscription) -> int:
        """Run the campaign cascade; on failure flag the subscription for the next sweep."""
        try:
            result = await self.entitlement_enforcer.enforce(subscription.tenant_id)
        except BillingEngineException as e:
            error = e if isinstance(e, EntitlementEnforcementError) else EntitlementEnforcementError(
                message=str(e),
                tenant_id=subscription.tenant_id,
                details={"cause": e.to_dict()},
            )
            logger.error(
                f"Entitlement enforcement deferred for tenant {subscription.tenant_id}: {error.message}",
                extra={"subscription_id": subscription.id, "error": error.to_dict()},
                exc_info=True,
            )
            await self.subscription_repository.update(subscription.id, {"entitlement_sync_pending": True})
            return 0
        return len(result.paused)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def _publish(self, event: DomainEvent) -> None:
        """Fire-and-forget: a notifier failure never affects billing state."""
        try:
            await self.notification_publisher.publish(event)
        except Exception as e:
            logger.error(
                f"Notification {event.event_type} failed: {e}",
                extra={"event_id": event.event_id},
                exc_info=True,
            )
