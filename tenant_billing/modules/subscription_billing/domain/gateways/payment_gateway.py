# 📄 File: tenant_billing/modules/subscription_billing/domain/gateways/payment_gateway.py
# 🧭 Purpose (Layman Explanation):
# Describes, without naming any specific payment company, what the billing engine needs from a
# payment provider: find the saved card, turn it into a one-time token, and charge it.
# 🧪 Purpose (Technical Summary):
# Abstract payment gateway port plus the normalized value objects (CardOnFile, GatewayOrder)
# every adapter must return and the ChargeResult produced by the renewal engine.
# 🔗 Dependencies:
# abc, dataclasses, decimal, typing
# 🔄 Connected Modules / Calls From:
# renewal_engine.py (consumer), infrastructure/external/ecartpay_gateway.py (adapter), tests/fakes.py

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class CardOnFile:
    """A saved card, reduced to the fields billing needs."""
    card_id: str
    cardholder_name: str
    last_four: Optional[str] = None
    brand: Optional[str] = None
    is_default: bool = False


@dataclass(frozen=True)
class GatewayOrder:
    """A completed charge as reported by the gateway."""
    order_id: str
    status: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    gateway_order: Optional[GatewayOrder] = None
    error_message: Optional[str] = None

    @classmethod
    def succeeded(cls, order: GatewayOrder) -> "ChargeResult":
        return cls(success=True, gateway_order=order)

    @classmethod
    def failed(cls, error_message: str) -> "ChargeResult":
        return cls(success=False, error_message=error_message)


class PaymentGatewayClient(ABC):
    """
    Port for the card-on-file payment provider.

    Implementations raise the PaymentGatewayError family on any failure.
    """

    @abstractmethod
    async def get_default_card(self, customer_ref: str) -> Optional[CardOnFile]:
        """Return the customer's default card, or None when no card is saved."""
        pass

    @abstractmethod
    async def tokenize_card(self, customer_ref: str, card_id: str, cardholder_name: str) -> str:
        """Exchange a saved card for a single-use charge token."""
        pass

    @abstractmethod
    async def charge(
        self,
        customer_ref: str,
        token: str,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str
    ) -> GatewayOrder:
        """
        Charge a token.

        Raises:
            PaymentDeclinedError: Gateway refused the charge
            PaymentGatewayError: Any other gateway failure
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
