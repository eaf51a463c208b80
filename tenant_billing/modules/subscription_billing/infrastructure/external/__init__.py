"""
External service adapters.
"""

from .ecartpay_gateway import EcartPayGateway

__all__ = ["EcartPayGateway"]
