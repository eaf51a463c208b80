"""
Billing API v1 endpoints.
"""

from .billing import billing_router

__all__ = ["billing_router"]
