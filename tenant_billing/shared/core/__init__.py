"""
Core utilities package for the Tenant Billing service.
Provides the exception hierarchy shared by every module.
"""

from .exceptions import (
    BillingEngineException,
    ValidationError,
    NotFoundError,
    ConflictError,
    PaymentGatewayError,
    PaymentDeclinedError,
    CardNotFoundError,
    GatewayTimeoutError,
    GatewayAuthenticationError,
    DatabaseError,
    RepositoryError,
    TransactionError,
    EntitlementEnforcementError,
    exception_to_dict,
)

__all__ = [
    "BillingEngineException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "PaymentGatewayError",
    "PaymentDeclinedError",
    "CardNotFoundError",
    "GatewayTimeoutError",
    "GatewayAuthenticationError",
    "DatabaseError",
    "RepositoryError",
    "TransactionError",
    "EntitlementEnforcementError",
    "exception_to_dict",
]
