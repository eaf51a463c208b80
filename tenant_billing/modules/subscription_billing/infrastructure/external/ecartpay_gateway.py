# 📄 File: tenant_billing/modules/subscription_billing/infrastructure/external/ecartpay_gateway.py
# 🧭 Purpose (Layman Explanation):
# Talks to EcartPay, the payment company that stores the restaurants' cards: it logs in, finds the
# saved card, turns it into a one-time token and charges the monthly price.
# 🧪 Purpose (Technical Summary):
# EcartPay adapter implementing the PaymentGatewayClient port over the shared aiohttp APIClient.
# Caches the API token, normalizes the gateway's response shapes ({docs: [...]}, {data: ...})
# into CardOnFile / GatewayOrder, and sends the idempotency key with every order.
# 🔗 Dependencies:
# aiohttp (BasicAuth), APIClient, payment gateway port, shared exceptions and logging
# 🔄 Connected Modules / Calls From:
# container wiring (production gateway), renewal_engine.py (through the port)

import asyncio
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from tenant_billing.shared.config.settings import Settings
from tenant_billing.shared.core.exceptions import (
    GatewayAuthenticationError,
    PaymentDeclinedError,
    PaymentGatewayError,
)
from tenant_billing.shared.infrastructure.external_apis.api_client import APIClient
from tenant_billing.shared.utils.logging import get_logger

from ...domain.gateways.payment_gateway import CardOnFile, GatewayOrder, PaymentGatewayClient

logger = get_logger(__name__)

API_NAME = "ecartpay"

# Tokens live 60 minutes; refresh 5 minutes early
AUTH_TOKEN_TTL_SECONDS = 55 * 60

DECLINED_ORDER_STATUSES = {"declined", "failed", "rejected", "cancelled", "canceled"}


def _extract_docs(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the list inside any of the list envelopes the gateway uses."""
    candidates: List[Any] = [body.get("docs"), body.get("data"), body.get("cards")]
    data = body.get("data")
    if isinstance(data, dict):
        candidates.insert(0, data.get("docs"))

    for candidate in candidates:
        if isinstance(candidate, list):
            return [item for item in candidate if isinstance(item, dict)]
    return []


def normalize_card(raw: Dict[str, Any]) -> CardOnFile:
    """
    Map a gateway card document onto CardOnFile.

    Raises:
        PaymentGatewayError: If the document has no card id
    """
    card_id = raw.get("id") or raw.get("_id")
    if not card_id:
        raise PaymentGatewayError("Card document without id", gateway=API_NAME, gateway_response=raw)

    last_four = raw.get("last_four") or raw.get("last4")
    if not last_four and raw.get("number"):
        last_four = str(raw["number"])[-4:]

    return CardOnFile(
        card_id=str(card_id),
        cardholder_name=raw.get("name") or raw.get("cardholder_name") or "",
        last_four=last_four,
        brand=raw.get("brand") or raw.get("type"),
        is_default=bool(raw.get("default") or raw.get("is_default")),
    )


def normalize_order(raw: Dict[str, Any], amount: Decimal, currency: str) -> GatewayOrder:
    """
    Map a gateway order document onto GatewayOrder.

    Raises:
        PaymentGatewayError: If the document has no order id
    """
    order = raw.get("data") if isinstance(raw.get("data"), dict) else raw
    order_id = order.get("id") or order.get("_id")
    if not order_id:
        raise PaymentGatewayError("Order response without id", gateway=API_NAME, gateway_response=raw)

    return GatewayOrder(
        order_id=str(order_id),
        status=str(order.get("status") or "created").lower(),
        amount=Decimal(str(order.get("amount", amount))),
        currency=str(order.get("currency") or currency).upper(),
    )


class EcartPayGateway(PaymentGatewayClient):
    """
    EcartPay implementation of the payment gateway port.
    """

    def __init__(
        self,
        api_client: APIClient,
        public_key: Optional[str],
        secret_key: Optional[str],
        notify_url: Optional[str] = None,
        monotonic: Callable[[], float] = time.monotonic
    ):
        self.api_client = api_client
        self.public_key = public_key
        self.secret_key = secret_key
        self.notify_url = notify_url
        self._monotonic = monotonic

        self._auth_token: Optional[str] = None
        self._auth_token_expires_at = 0.0
        self._auth_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EcartPayGateway":
        api_client = APIClient(
            base_url=settings.ecartpay_base_url,
            api_name=API_NAME,
            timeout=settings.ECARTPAY_TIMEOUT_SECONDS,
        )
        return cls(
            api_client=api_client,
            public_key=settings.ECARTPAY_PUBLIC_KEY,
            secret_key=settings.ECARTPAY_SECRET_KEY,
            notify_url=settings.ECARTPAY_NOTIFY_URL,
        )

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    async def _get_auth_token(self) -> str:
        async with self._auth_lock:
            if self._auth_token and self._monotonic() < self._auth_token_expires_at:
                return self._auth_token

            if not self.public_key or not self.secret_key:
                raise GatewayAuthenticationError(
                    "EcartPay keys are not configured", gateway=API_NAME, operation="authorizations/token"
                )

            body = await self.api_client.post(
                "authorizations/token",
                data={"public_key": self.public_key, "private_key": self.secret_key},
                auth=aiohttp.BasicAuth(self.public_key, self.secret_key),
            )
            token = body.get("token")
            if not token:
                raise GatewayAuthenticationError(
                    "EcartPay returned no token", gateway=API_NAME, operation="authorizations/token"
                )

            self._auth_token = token
            self._auth_token_expires_at = self._monotonic() + AUTH_TOKEN_TTL_SECONDS
            logger.info("EcartPay token generated")
            return token

    async def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": await self._get_auth_token()}

    # =========================================================================
    # PORT IMPLEMENTATION
    # =========================================================================

    async def get_default_card(self, customer_ref: str) -> Optional[CardOnFile]:
        try:
            body = await self.api_client.get(
                f"customers/{customer_ref}/cards",
                headers=await self._auth_headers(),
            )
        except PaymentGatewayError as e:
            if e.details.get("http_status") == 404:
                return None
            raise

        cards = [normalize_card(raw) for raw in _extract_docs(body)]
        if not cards:
            return None
        for card in cards:
            if card.is_default:
                return card
        return cards[0]

    async def tokenize_card(self, customer_ref: str, card_id: str, cardholder_name: str) -> str:
        payload: Dict[str, Any] = {"id": card_id}
        if cardholder_name:
            payload["name"] = cardholder_name

        body = await self.api_client.post("tokens", data=payload, headers=await self._auth_headers())
        token = body.get("token")
        if not token and isinstance(body.get("data"), dict):
            token = body["data"].get("token")
        if not token:
            raise PaymentGatewayError(
                "Card tokenization returned no token",
                gateway=API_NAME,
                operation="tokens",
                gateway_response=body,
            )
        return token

    async def charge(
        self,
        customer_ref: str,
        token: str,
        amount: Decimal,
        currency: str,
        description: str,
        idempotency_key: str
    ) -> GatewayOrder:
        payload: Dict[str, Any] = {
            "customer_id": customer_ref,
            "currency": currency,
            "items": [{
                "name": description,
                "quantity": 1,
                "price": float(amount),
            }],
            "token": token,
            "idempotency_key": idempotency_key,
        }
        if self.notify_url:
            payload["notify_url"] = self.notify_url

        headers = await self._auth_headers()
        headers["Idempotency-Key"] = idempotency_key

        body = await self.api_client.post("orders", data=payload, headers=headers)
        order = normalize_order(body, amount, currency)

        if order.status in DECLINED_ORDER_STATUSES:
            raise PaymentDeclinedError(
                f"Order {order.order_id} was {order.status}",
                gateway=API_NAME,
                operation="orders",
                gateway_response=body,
            )
        return order

    async def close(self) -> None:
        await self.api_client.close()
