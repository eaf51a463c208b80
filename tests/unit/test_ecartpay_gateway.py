from decimal import Decimal

import aiohttp
import pytest

from tenant_billing.shared.core.exceptions import (
    GatewayAuthenticationError,
    PaymentDeclinedError,
    PaymentGatewayError,
)
from tenant_billing.modules.subscription_billing.infrastructure.external.ecartpay_gateway import (
    AUTH_TOKEN_TTL_SECONDS,
    EcartPayGateway,
    normalize_card,
)


class StubAPIClient:
    """Records calls and answers from a per-endpoint queue."""

    def __init__(self, responses=None):
        self.responses = {"authorizations/token": {"token": "jwt-1"}}
        self.responses.update(responses or {})
        self.calls = []
        self.closed = False

    def _answer(self, method, endpoint, **kwargs):
        self.calls.append({"method": method, "endpoint": endpoint, **kwargs})
        response = self.responses[endpoint]
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, endpoint, params=None, headers=None):
        return self._answer("GET", endpoint, params=params, headers=headers)

    async def post(self, endpoint, data=None, headers=None, auth=None):
        return self._answer("POST", endpoint, data=data, headers=headers, auth=auth)

    async def close(self):
        self.closed = True

    def calls_to(self, endpoint):
        return [call for call in self.calls if call["endpoint"] == endpoint]


class Ticker:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


def make_gateway(responses=None, clock=None, **kwargs):
    client = StubAPIClient(responses)
    options = {"public_key": "pub", "secret_key": "sec", "notify_url": None}
    options.update(kwargs)
    gateway = EcartPayGateway(client, monotonic=clock or Ticker(), **options)
    return gateway, client


class TestAuthentication:
    async def test_token_requested_with_basic_auth(self):
        gateway, client = make_gateway({"customers/cus_1/cards": {"docs": []}})

        await gateway.get_default_card("cus_1")

        [auth_call] = client.calls_to("authorizations/token")
        assert auth_call["auth"] == aiohttp.BasicAuth("pub", "sec")
        assert auth_call["data"] == {"public_key": "pub", "private_key": "sec"}
        assert client.calls_to("customers/cus_1/cards")[0]["headers"] == {"Authorization": "jwt-1"}

    async def test_token_reused_until_expiry(self):
        clock = Ticker()
        gateway, client = make_gateway({"customers/cus_1/cards": {"docs": []}}, clock=clock)

        await gateway.get_default_card("cus_1")
        await gateway.get_default_card("cus_1")
        assert len(client.calls_to("authorizations/token")) == 1

        clock.value += AUTH_TOKEN_TTL_SECONDS + 1
        await gateway.get_default_card("cus_1")
        assert len(client.calls_to("authorizations/token")) == 2

    async def test_missing_keys(self):
        gateway, client = make_gateway(secret_key=None)

        with pytest.raises(GatewayAuthenticationError):
            await gateway.get_default_card("cus_1")
        assert client.calls == []

    async def test_empty_token_response(self):
        gateway, _ = make_gateway({"authorizations/token": {}})

        with pytest.raises(GatewayAuthenticationError):
            await gateway.tokenize_card("cus_1", "card_1", "Ana")


class TestCards:
    async def test_default_card_preferred(self):
        gateway, _ = make_gateway({"customers/cus_1/cards": {"docs": [
            {"id": "card_a", "name": "Ana", "last4": "1111"},
            {"_id": "card_b", "name": "Ana", "last_four": "2222", "default": True},
        ]}})

        card = await gateway.get_default_card("cus_1")

        assert card.card_id == "card_b"
        assert card.last_four == "2222"

    async def test_first_card_when_none_is_default(self):
        gateway, _ = make_gateway({"customers/cus_1/cards": {"data": {"docs": [
            {"id": "card_a", "name": "Ana"},
            {"id": "card_b", "name": "Ana"},
        ]}}})

        card = await gateway.get_default_card("cus_1")

        assert card.card_id == "card_a"

    async def test_no_cards(self):
        gateway, _ = make_gateway({"customers/cus_1/cards": {"docs": []}})

        assert await gateway.get_default_card("cus_1") is None

    async def test_unknown_customer_returns_none(self):
        not_found = PaymentGatewayError("Not found", details={"http_status": 404})
        gateway, _ = make_gateway({"customers/cus_1/cards": not_found})

        assert await gateway.get_default_card("cus_1") is None

    async def test_server_error_propagates(self):
        broken = PaymentGatewayError("Boom", details={"http_status": 500})
        gateway, _ = make_gateway({"customers/cus_1/cards": broken})

        with pytest.raises(PaymentGatewayError):
            await gateway.get_default_card("cus_1")

    def test_card_number_fallback_for_last_four(self):
        card = normalize_card({"id": "c1", "cardholder_name": "Ana", "number": "4242424242424242"})

        assert card.last_four == "4242"
        assert card.cardholder_name == "Ana"

    def test_card_without_id_rejected(self):
        with pytest.raises(PaymentGatewayError):
            normalize_card({"name": "Ana"})


class TestTokenize:
    async def test_tokenize_sends_card_and_name(self):
        gateway, client = make_gateway({"tokens": {"token": "tok_1"}})

        token = await gateway.tokenize_card("cus_1", "card_1", "Ana")

        assert token == "tok_1"
        assert client.calls_to("tokens")[0]["data"] == {"id": "card_1", "name": "Ana"}

    async def test_token_nested_under_data(self):
        gateway, _ = make_gateway({"tokens": {"data": {"token": "tok_2"}}})

        assert await gateway.tokenize_card("cus_1", "card_1", "Ana") == "tok_2"

    async def test_missing_token(self):
        gateway, _ = make_gateway({"tokens": {"data": {}}})

        with pytest.raises(PaymentGatewayError):
            await gateway.tokenize_card("cus_1", "card_1", "Ana")


class TestCharge:
    async def test_charge_sends_idempotency_key(self):
        gateway, client = make_gateway(
            {"orders": {"id": "ord_1", "status": "PAID", "amount": 399, "currency": "mxn"}},
            notify_url="https://billing.example/webhooks/ecartpay",
        )

        order = await gateway.charge("cus_1", "tok_1", Decimal("399"), "MXN", "Tier 1 renewal", "sub-1:2026-10-19")

        assert order.order_id == "ord_1"
        assert order.status == "paid"
        assert order.amount == Decimal("399")
        assert order.currency == "MXN"

        [call] = client.calls_to("orders")
        assert call["headers"]["Idempotency-Key"] == "sub-1:2026-10-19"
        assert call["headers"]["Authorization"] == "jwt-1"
        assert call["data"]["idempotency_key"] == "sub-1:2026-10-19"
        assert call["data"]["customer_id"] == "cus_1"
        assert call["data"]["token"] == "tok_1"
        assert call["data"]["items"] == [{"name": "Tier 1 renewal", "quantity": 1, "price": 399.0}]
        assert call["data"]["notify_url"] == "https://billing.example/webhooks/ecartpay"

    async def test_declined_status_raises(self):
        gateway, _ = make_gateway({"orders": {"data": {"id": "ord_2", "status": "declined"}}})

        with pytest.raises(PaymentDeclinedError):
            await gateway.charge("cus_1", "tok_1", Decimal("399"), "MXN", "Tier 1 renewal", "k")

    async def test_order_without_id(self):
        gateway, _ = make_gateway({"orders": {"status": "paid"}})

        with pytest.raises(PaymentGatewayError):
            await gateway.charge("cus_1", "tok_1", Decimal("399"), "MXN", "Tier 1 renewal", "k")

    async def test_missing_amount_falls_back_to_requested(self):
        gateway, _ = make_gateway({"orders": {"id": "ord_3", "status": "paid"}})

        order = await gateway.charge("cus_1", "tok_1", Decimal("599"), "MXN", "Tier 2 renewal", "k")

        assert order.amount == Decimal("599")
        assert order.currency == "MXN"


async def test_close_closes_http_client():
    gateway, client = make_gateway()

    await gateway.close()

    assert client.closed
