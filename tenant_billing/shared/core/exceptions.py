# 📄 File: tenant_billing/shared/core/exceptions.py
# 🧭 Purpose (Layman Explanation):
# This file defines all the special error types the billing service uses to say what went wrong
# (a bad plan change request, a declined card, a database outage) in a clear, organized way.
# 🧪 Purpose (Technical Summary):
# Custom exception hierarchy providing specific error types with HTTP status codes,
# error details, and serialization for API responses and sweep error reporting.
# 🔗 Dependencies:
# FastAPI status constants, typing
# 🔄 Connected Modules / Calls From:
# Renewal engine, entitlement enforcer, payment gateway adapter, repositories, API router

from typing import Any, Dict, Optional
from fastapi import status


class BillingEngineException(Exception):
    """
    Base exception class for the billing service.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__.upper()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "status_code": self.status_code
            }
        }


# =============================================================================
# REQUEST / DOMAIN EXCEPTIONS
# =============================================================================

class ValidationError(BillingEngineException):
    """
    Exception raised for data validation failures.
    Used when a plan change request is rejected synchronously.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if constraint:
            details["constraint"] = constraint

        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            error_code="VALIDATION_ERROR"
        )


class NotFoundError(BillingEngineException):
    """
    Exception raised when requested resource is not found.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code="NOT_FOUND"
        )


class ConflictError(BillingEngineException):
    """
    Exception raised when the request conflicts with current state,
    e.g. a manual sweep trigger while a sweep is already running.
    """

    def __init__(
        self,
        message: str = "Resource state conflict",
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}
        if resource:
            details["resource"] = resource

        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code="CONFLICT"
        )


# =============================================================================
# PAYMENT GATEWAY EXCEPTIONS
# =============================================================================

class PaymentGatewayError(BillingEngineException):
    """
    Exception raised when a payment gateway call fails.
    Always resolves to a failed charge; never retried within a sweep.
    """

    def __init__(
        self,
        message: str = "Payment gateway error",
        gateway: Optional[str] = "ecartpay",
        operation: Optional[str] = None,
        gateway_response: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "PAYMENT_GATEWAY_ERROR"
    ):
        if not details:
            details = {}

        if gateway:
            details["gateway"] = gateway
        if operation:
            details["operation"] = operation
        if gateway_response is not None:
            details["gateway_response"] = gateway_response

        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
            error_code=error_code
        )


class CardNotFoundError(PaymentGatewayError):
    """No usable card on file for the gateway customer."""

    def __init__(self, message: str = "No payment method found", **kwargs):
        super().__init__(message=message, error_code="CARD_NOT_FOUND", **kwargs)


class PaymentDeclinedError(PaymentGatewayError):
    """The gateway answered but refused the charge."""

    def __init__(self, message: str = "Payment declined", **kwargs):
        super().__init__(message=message, error_code="PAYMENT_DECLINED", **kwargs)


class GatewayTimeoutError(PaymentGatewayError):
    """The gateway did not answer within the configured timeout."""

    def __init__(self, message: str = "Payment gateway timeout", **kwargs):
        super().__init__(message=message, error_code="GATEWAY_TIMEOUT", **kwargs)


class GatewayAuthenticationError(PaymentGatewayError):
    """Gateway credentials were rejected."""

    def __init__(self, message: str = "Payment gateway authentication failed", **kwargs):
        super().__init__(message=message, error_code="GATEWAY_AUTHENTICATION_ERROR", **kwargs)


# =============================================================================
# PERSISTENCE EXCEPTIONS
# =============================================================================

class DatabaseError(BillingEngineException):
    """
    Exception raised for database operation failures.
    Used for connection issues, query failures, etc.
    """

    def __init__(
        self,
        message: str = "Database error",
        operation: Optional[str] = None,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="DATABASE_ERROR"
        )


class RepositoryError(BillingEngineException):
    """
    Exception raised for repository/database operation failures.
    Used when database operations fail at the repository layer.
    """

    def __init__(
        self,
        message: str = "Repository operation failed",
        operation: Optional[str] = None,
        entity: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if operation:
            details["operation"] = operation
        if entity:
            details["entity"] = entity

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="REPOSITORY_ERROR"
        )


class TransactionError(BillingEngineException):
    """
    Exception raised when a database transaction fails.
    Used to wrap commit/rollback errors in DB sessions.
    """

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="TRANSACTION_ERROR"
        )


# =============================================================================
# ENTITLEMENT EXCEPTIONS
# =============================================================================

class EntitlementEnforcementError(BillingEngineException):
    """
    Exception raised when pausing excess campaigns fails after a plan change.
    The plan change itself stays committed; reconciliation is retried next sweep.
    """

    def __init__(
        self,
        message: str = "Entitlement enforcement failed",
        tenant_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}
        if tenant_id:
            details["tenant_id"] = tenant_id

        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code="ENTITLEMENT_ENFORCEMENT_ERROR"
        )


def exception_to_dict(exception: Exception) -> Dict[str, Any]:
    """
    Convert any exception to dictionary format.

    Args:
        exception: Exception to convert

    Returns:
        Dict: Exception data as dictionary
    """
    if isinstance(exception, BillingEngineException):
        return exception.to_dict()

    return {
        "error": {
            "code": exception.__class__.__name__.upper(),
            "message": str(exception),
            "details": {},
            "status_code": 500
        }
    }
