import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx

from paidmada.core.exceptions.PaymentException import (
    AuthenticationError,
    InternalPaymentError,
    PaymentError,
    UpstreamNotFoundError,
    UpstreamServerError,
    UpstreamValidationError,
)
from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.authtoken import AuthToken
from paidmada.core.payments.model.paynetwork import Network
from paidmada.utilities.status_mapper import StatusMapper

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class PaymentProvider(Protocol):
    """Contract every network adapter, real or simulated, satisfies."""

    network: Network

    async def authenticate(self) -> None: ...
    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse: ...
    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails: ...
    async def aclose(self) -> None: ...


def parse_amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BaseProvider(ABC):
    """
    Shared plumbing for the HTTP network adapters: one bearer token cache per
    instance, an httpx client bounded by a request timeout, and translation of
    HTTP failures into PaymentError subclasses.
    """

    network: Network
    base_url_sandbox: str
    base_url_production: str
    status_mapper: StatusMapper

    def __init__(
        self,
        sandbox: bool = True,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[dict] = None,
    ):
        self.sandbox = sandbox
        self._token: Optional[AuthToken] = None
        self._token_lock = asyncio.Lock()
        self.http_client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", **(headers or {})},
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

    @property
    def base_url(self) -> str:
        return self.base_url_sandbox if self.sandbox else self.base_url_production

    @property
    def tag(self) -> str:
        return f"[{self.network.value.upper()}]"

    # Token lifecycle

    def is_token_valid(self) -> bool:
        return self._token is not None and self._token.is_valid()

    async def get_valid_token(self) -> str:
        """
        Return a usable access token, authenticating at most once per call.
        Concurrent callers wait on the same refresh instead of starting their own.
        """
        if not self.is_token_valid():
            async with self._token_lock:
                if not self.is_token_valid():
                    await self.authenticate()

        if self._token is None:
            raise AuthenticationError("Authentication failed", code="AUTH_FAILED", network=self.network)
        return self._token.access_token

    async def _fetch_token(self, method: str, url: str, **kwargs) -> AuthToken:
        """Run an OAuth2 token request and replace the cached token wholesale."""
        try:
            data = await self._request("authenticate", method, url, **kwargs)
            token = AuthToken.from_response(data)
        except AuthenticationError:
            raise
        except PaymentError as e:
            raise AuthenticationError(e.message, network=self.network, details=e.details) from e
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError(
                "[authenticate] Malformed token response", network=self.network, details=str(e)
            ) from e

        self._token = token
        logger.info(f"{self.tag} Authentication successful")
        return token

    # HTTP

    async def _request(self, operation: str, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.http_client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e.response, operation) from e
        except httpx.TimeoutException as e:
            logger.error(f"{self.tag} {operation} timed out")
            raise UpstreamServerError(f"[{operation}] Provider request timed out", network=self.network) from e
        except httpx.RequestError as e:
            logger.error(f"{self.tag} Network error during {operation}: {e}")
            raise InternalPaymentError(f"[{operation}] {e}", network=self.network, details=str(e)) from e

        try:
            body = response.json()
        except ValueError as e:
            raise InternalPaymentError(
                f"[{operation}] Invalid JSON in provider response", network=self.network, details=response.text
            ) from e

        # Every network answers with a JSON object
        if not isinstance(body, dict):
            raise InternalPaymentError(
                f"[{operation}] Unexpected provider response", network=self.network, details=response.text
            )
        return body

    def _translate_status_error(self, response: httpx.Response, operation: str) -> PaymentError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = response.text

        logger.error(f"{self.tag} {operation} failed: status={status}, body={body}")

        if status in (401, 403):
            return AuthenticationError(f"[{operation}] Authentication error", network=self.network, details=body)
        if status == 400:
            return UpstreamValidationError(f"[{operation}] Invalid data", network=self.network, details=body)
        if status == 404:
            return UpstreamNotFoundError(f"[{operation}] Resource not found", network=self.network, details=body)
        if status >= 500:
            return UpstreamServerError(f"[{operation}] Provider server error", network=self.network, details=body)
        return InternalPaymentError(
            f"[{operation}] Unexpected provider response ({status})", network=self.network, details=body
        )

    async def _log_request(self, request: httpx.Request):
        headers = dict(request.headers)
        if "authorization" in headers:
            headers["authorization"] = "***"
        logger.debug(f"{self.tag} Request: {request.method} {request.url} headers={headers}")

    async def _log_response(self, response: httpx.Response):
        logger.debug(f"{self.tag} Response: {response.status_code} {response.request.url}")

    async def aclose(self):
        await self.http_client.aclose()

    # Contract

    @abstractmethod
    async def authenticate(self) -> None:
        ...

    @abstractmethod
    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        ...

    @abstractmethod
    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        ...
