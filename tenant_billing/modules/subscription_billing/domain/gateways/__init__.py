"""
Payment gateway port and normalized gateway types.
"""

from .payment_gateway import CardOnFile, ChargeResult, GatewayOrder, PaymentGatewayClient

__all__ = ["CardOnFile", "ChargeResult", "GatewayOrder", "PaymentGatewayClient"]
