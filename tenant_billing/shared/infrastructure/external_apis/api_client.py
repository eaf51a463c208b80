# 📄 File: tenant_billing/shared/infrastructure/external_apis/api_client.py

# 🧭 Purpose (Layman Explanation):
# This file creates a careful HTTP client that knows how to talk to the payment provider,
# handling timeouts and error answers so a broken network never looks like a successful payment.

# 🧪 Purpose (Technical Summary):
# Generic async HTTP client (aiohttp) with status-code mapping into the payment gateway
# exception family, tenacity retries for idempotent reads only, and per-call timing logs.

# 🔗 Dependencies:
# - aiohttp: Async HTTP client
# - tenacity: Retry logic and backoff strategies for GET requests

# 🔄 Connected Modules / Calls From:
# Used by: EcartPay payment gateway adapter (subscription_billing.infrastructure.external)

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tenant_billing.shared.core.exceptions import (
    GatewayAuthenticationError,
    GatewayTimeoutError,
    PaymentDeclinedError,
    PaymentGatewayError,
)
from tenant_billing.shared.utils.logging import get_logger

logger = get_logger(__name__)
_retry_logger = logging.getLogger(__name__)


def _is_transient(exception: BaseException) -> bool:
    """Timeouts and 5xx answers are worth another GET; everything else is final."""
    if isinstance(exception, GatewayTimeoutError):
        return True
    if isinstance(exception, PaymentGatewayError):
        return exception.details.get("http_status", 0) >= 500
    return False


def _extract_error_message(body: Any, fallback: str) -> str:
    """Pull a human readable message out of an error body ({error: {message}} or {message})."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return fallback


class APIClient:
    """
    Generic async HTTP client for the payment gateway integration.

    Features:
    - Status code to exception mapping
    - Automatic retry with exponential backoff (GET only)
    - Request/response timing logs
    - Per-request header overrides (auth tokens, idempotency keys)
    """

    def __init__(
        self,
        base_url: str,
        api_name: str,
        timeout: int = 30,
        max_retries: int = 3,
        default_headers: Optional[Dict[str, str]] = None,
        session: Optional[ClientSession] = None
    ):
        """Initialize API client with configuration."""
        self.base_url = base_url.rstrip('/')
        self.api_name = api_name
        self.timeout = timeout
        self.max_retries = max_retries
        self.default_headers = default_headers or {}
        self.session: Optional[ClientSession] = session

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
        }

    async def initialize(self):
        """Initialize the client session."""
        if self.session is not None:
            return

        connector = aiohttp.TCPConnector(limit=10, limit_per_host=5, ttl_dns_cache=300)
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.timeout),
            connector=connector,
        )
        logger.info(f"API client initialized for {self.api_name}")

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default headers for requests."""
        return {
            'User-Agent': f'TenantBilling/1.0 ({self.api_name}-client)',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            **self.default_headers,
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        data: Optional[Dict] = None,
        headers: Optional[Dict] = None,
        auth: Optional[aiohttp.BasicAuth] = None
    ) -> Dict[str, Any]:
        """Make a single HTTP request and map failures to gateway exceptions."""
        if not self.session:
            await self.initialize()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        request_headers = self._get_default_headers()
        if headers:
            request_headers.update(headers)

        request_kwargs: Dict[str, Any] = {
            'method': method,
            'url': url,
            'headers': request_headers,
        }
        if params:
            request_kwargs['params'] = params
        if data is not None:
            request_kwargs['json'] = data
        if auth is not None:
            request_kwargs['auth'] = auth

        start_time = time.time()
        status_code = 0
        self.stats['total_requests'] += 1

        try:
            async with self.session.request(**request_kwargs) as response:
                status_code = response.status
                body = await self._read_body(response)
                self._handle_response_status(status_code, body, method, endpoint)

                self.stats['successful_requests'] += 1
                logger.performance.log_external_api_call(
                    api_name=self.api_name,
                    endpoint=endpoint,
                    method=method,
                    status_code=status_code,
                    duration_ms=(time.time() - start_time) * 1000,
                    success=True,
                )
                return body

        except Exception as e:
            self.stats['failed_requests'] += 1
            logger.performance.log_external_api_call(
                api_name=self.api_name,
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=(time.time() - start_time) * 1000,
                success=False,
                extra={'error': str(e)},
            )
            raise self._transform_exception(e, method, endpoint)

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return {'raw_response': await response.text()}
        if body is None:
            return {}
        if not isinstance(body, dict):
            return {'data': body}
        return body

    def _handle_response_status(self, status_code: int, body: Dict[str, Any], method: str, endpoint: str):
        """Handle HTTP response status codes."""
        if 200 <= status_code < 300:
            return

        message = _extract_error_message(body, f"{self.api_name} answered {status_code}")
        common = {
            'gateway': self.api_name,
            'operation': f"{method} {endpoint}",
            'gateway_response': body,
            'details': {'http_status': status_code},
        }

        if status_code in (401, 403):
            raise GatewayAuthenticationError(message, **common)
        if status_code == 402:
            raise PaymentDeclinedError(message, **common)
        if status_code in (408, 504):
            raise GatewayTimeoutError(message, **common)
        raise PaymentGatewayError(message, **common)

    def _transform_exception(self, exception: Exception, method: str, endpoint: str) -> Exception:
        """Transform exceptions to appropriate gateway exceptions."""
        if isinstance(exception, PaymentGatewayError):
            return exception
        if isinstance(exception, asyncio.TimeoutError):
            return GatewayTimeoutError(
                f"Timeout for {self.api_name}: {method} {endpoint}",
                gateway=self.api_name,
                operation=f"{method} {endpoint}",
            )
        if isinstance(exception, aiohttp.ClientError):
            return PaymentGatewayError(
                f"Client error for {self.api_name}: {exception}",
                gateway=self.api_name,
                operation=f"{method} {endpoint}",
            )
        return exception

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None
    ) -> Dict[str, Any]:
        """Make GET request, retrying timeouts and server errors."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(_retry_logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                response = await self._make_request('GET', endpoint, params, None, headers)
        return response

    async def post(
        self,
        endpoint: str,
        data: Optional[Dict] = None,
        headers: Optional[Dict] = None,
        auth: Optional[aiohttp.BasicAuth] = None
    ) -> Dict[str, Any]:
        """Make POST request (single attempt)."""
        return await self._make_request('POST', endpoint, None, data, headers, auth)

    def get_stats(self) -> Dict[str, Any]:
        """Get client request statistics."""
        return {
            **self.stats,
            'api_name': self.api_name,
            'error_rate': (
                self.stats['failed_requests'] / max(self.stats['total_requests'], 1)
            ) * 100,
        }

    async def close(self):
        """Close the client session and cleanup resources."""
        if self.session:
            await self.session.close()
            self.session = None

        logger.info(f"API client closed for {self.api_name}", extra=self.get_stats())
