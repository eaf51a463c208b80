"""
Domain services for subscription billing.
"""

from .billing_cycle import BillingCycleCalculator, Clock, utc_now
from .entitlement_enforcer import EnforcementResult, EntitlementEnforcer
from .renewal_engine import RenewalEngine

__all__ = [
    "BillingCycleCalculator",
    "Clock",
    "EnforcementResult",
    "EntitlementEnforcer",
    "RenewalEngine",
    "utc_now",
]
