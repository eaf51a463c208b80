"""
Domain events and the notification port for subscription billing.
"""

from .billing_events import (
    PlanChangeApplied,
    RenewalPaymentFailed,
    RenewalReminderDue,
    RenewalSucceeded,
    SubscriptionDegraded,
)
from .publisher import LoggingNotificationPublisher, NotificationPublisher

__all__ = [
    "PlanChangeApplied",
    "RenewalPaymentFailed",
    "RenewalReminderDue",
    "RenewalSucceeded",
    "SubscriptionDegraded",
    "LoggingNotificationPublisher",
    "NotificationPublisher",
]
