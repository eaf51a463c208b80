# 📄 File: tenant_billing/modules/subscription_billing/application/commands/schedule_downgrade.py
# 🧭 Purpose (Layman Explanation):
# Describes a restaurant's request to move to a cheaper plan when the current paid month ends,
# or to take that request back.
# 🧪 Purpose (Technical Summary):
# CQRS command objects for deferring a downgrade to period end and for cancelling it.
# 🔗 Dependencies:
# pydantic
# 🔄 Connected Modules / Calls From:
# application/handlers/plan_change_handlers.py, presentation/api/v1/billing.py

"""
Scheduled Downgrade Commands

Command Fields:
- subscription_id: Subscription to change (required)
- target_tier: Cheaper tier applied when the current period ends (schedule only)

The target tier is kept as a plain string here; the handler resolves it against
the plan catalog and raises ValidationError for unknown tiers.
"""

from pydantic import BaseModel, Field


class ScheduleDowngradeCommand(BaseModel):
    """
    Command for scheduling a downgrade at the end of the paid period.
    """

    subscription_id: str = Field(
        ...,
        min_length=1,
        description="Subscription to downgrade",
        examples=["3f1c2a9e-0d4b-4a57-9a55-2a4f8c0b6e11"]
    )
    target_tier: str = Field(
        ...,
        min_length=1,
        description="Tier applied when the current period ends (free or a cheaper paid tier)",
        examples=["tier1"]
    )


class CancelScheduledDowngradeCommand(BaseModel):
    """
    Command for dropping a previously scheduled downgrade.
    """

    subscription_id: str = Field(..., min_length=1, description="Subscription to keep on its current tier")
