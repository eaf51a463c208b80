"""
Request and response schemas for the billing API.
"""

from .billing_schemas import (
    ScheduleDowngradeRequest,
    SubscriptionResponse,
    SweepReportResponse,
    SweepStatusResponse,
)

__all__ = [
    "ScheduleDowngradeRequest",
    "SubscriptionResponse",
    "SweepReportResponse",
    "SweepStatusResponse",
]
