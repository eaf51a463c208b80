# 📄 File: tenant_billing/api/v1/__init__.py
# 🧭 Purpose (Layman Explanation):
# Groups version 1 of the billing web API.
# 🧪 Purpose (Technical Summary):
# Package initialization for API version 1 with version metadata.
# 🔗 Dependencies:
# None
# 🔄 Connected Modules / Calls From:
# tenant_billing/api/v1/router.py, tenant_billing/main.py

"""
Tenant Billing API Version 1

Structure:
    v1/
    ├── __init__.py          # This file
    ├── router.py            # Main v1 router aggregation
    └── health.py            # Health check endpoints
"""

__api_version__ = "v1"

ROUTE_PREFIXES = {
    "billing": "/billing",
}
