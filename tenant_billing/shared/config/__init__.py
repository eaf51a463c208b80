# 📄 File: tenant_billing/shared/config/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Contains the settings that tell the billing service how to reach its database,
# its payment gateway, and when to run the daily billing sweep.
#
# 🧪 Purpose (Technical Summary):
# Configuration package initialization exporting the pydantic-settings Settings
# class and its cached factory.
#
# 🔗 Dependencies:
# - settings.py (application settings)
#
# 🔄 Connected Modules / Calls From:
# - tenant_billing.main (application startup)
# - All modules requiring configuration

from .settings import get_settings, Settings

__all__ = [
    "get_settings",
    "Settings",
]
