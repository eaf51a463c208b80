"""
Command handlers for subscription billing.
"""

from .auto_renew_handler import ToggleAutoRenewCommandHandler
from .plan_change_handlers import CancelScheduledDowngradeCommandHandler, ScheduleDowngradeCommandHandler

__all__ = [
    "CancelScheduledDowngradeCommandHandler",
    "ScheduleDowngradeCommandHandler",
    "ToggleAutoRenewCommandHandler",
]
