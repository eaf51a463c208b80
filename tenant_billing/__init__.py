# 📄 File: tenant_billing/__init__.py
#
# 🧭 Purpose (Layman Explanation):
# Marks the 'tenant_billing' folder as the home of our restaurant subscription billing service,
# the part that charges saved cards every month and moves restaurants between plans.
#
# 🧪 Purpose (Technical Summary):
# Application package initialization with version info for the multi-tenant
# subscription renewal engine (daily sweep, renewals, downgrades, entitlement cascade).
#
# 🔗 Dependencies:
# - Python packaging system
#
# 🔄 Connected Modules / Calls From:
# - tenant_billing.main (FastAPI entry point)
# - tenant_billing.background_jobs (Celery worker and beat)

"""
Tenant Billing - Subscription Renewal Engine

Runs recurring subscription billing for restaurants on the platform:
a daily sweep sends renewal reminders, applies scheduled plan downgrades,
charges saved cards for renewals and degrades tenants whose charge fails.
"""

__version__ = "1.0.0"
__title__ = "Tenant Billing Renewal Engine"
__description__ = "Recurring subscription billing for multi-tenant restaurants"
