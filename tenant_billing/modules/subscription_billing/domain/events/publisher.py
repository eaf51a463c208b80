# 📄 File: tenant_billing/modules/subscription_billing/domain/events/publisher.py
# 🧭 Purpose (Layman Explanation):
# The mailbox the billing engine drops its announcements into. Today it only writes them to the log;
# a real email or WhatsApp sender can be plugged in later without touching the billing rules.
# 🧪 Purpose (Technical Summary):
# NotificationPublisher port and the default LoggingNotificationPublisher implementation.
# 🔗 Dependencies:
# abc, tenant_billing.shared.events.base, tenant_billing.shared.utils.logging
# 🔄 Connected Modules / Calls From:
# renewal_engine.py, container wiring, tests/fakes.py

from abc import ABC, abstractmethod

from tenant_billing.shared.events.base import DomainEvent
from tenant_billing.shared.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationPublisher(ABC):
    """
    Port for tenant-facing notifications.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """
        Deliver an event.

        Args:
            event: Domain event to deliver
        """
        pass


class LoggingNotificationPublisher(NotificationPublisher):
    """Writes every event to the structured log and delivers nothing else."""

    async def publish(self, event: DomainEvent) -> None:
        logger.info(
            f"Notification queued: {event.event_type}",
            extra={"event_type": event.event_type, "event": event.to_dict()},
        )
