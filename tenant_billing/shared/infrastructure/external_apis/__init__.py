# 📄 File: tenant_billing/shared/infrastructure/external_apis/__init__.py

# 🧭 Purpose (Layman Explanation):
# Home of the HTTP client the billing service uses to talk to outside services such as the payment provider.

# 🧪 Purpose (Technical Summary):
# Exports the generic aiohttp APIClient with status mapping and GET retries.

# 🔗 Dependencies:
# - api_client: Generic HTTP client with retry logic

# 🔄 Connected Modules / Calls From:
# Used by: EcartPay payment gateway adapter

from .api_client import APIClient

__all__ = ["APIClient"]
