"""
Application commands for subscription billing.
"""

from .schedule_downgrade import CancelScheduledDowngradeCommand, ScheduleDowngradeCommand
from .toggle_auto_renew import ToggleAutoRenewCommand

__all__ = ["CancelScheduledDowngradeCommand", "ScheduleDowngradeCommand", "ToggleAutoRenewCommand"]
