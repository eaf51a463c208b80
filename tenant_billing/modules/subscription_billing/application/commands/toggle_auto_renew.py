# 📄 File: tenant_billing/modules/subscription_billing/application/commands/toggle_auto_renew.py
# 🧭 Purpose (Layman Explanation):
# Describes a restaurant's request to turn automatic monthly renewal on or off.
# 🧪 Purpose (Technical Summary):
# CQRS command object for the auto-renew flag of a subscription.
# 🔗 Dependencies:
# pydantic
# 🔄 Connected Modules / Calls From:
# application/handlers/auto_renew_handler.py, container.py

from pydantic import BaseModel, Field


class ToggleAutoRenewCommand(BaseModel):
    """
    Command for switching automatic renewal on or off.
    """

    subscription_id: str = Field(..., min_length=1, description="Subscription to update")
    auto_renew: bool = Field(..., description="Charge the saved card when the paid period ends")
