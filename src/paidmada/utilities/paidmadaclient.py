import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from paidmada.core.payments.model.paymentstatus import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_INTERVAL_SECONDS = 5.0
TERMINAL_STATUS_VALUES = frozenset(status.value for status in TERMINAL_STATUSES)


class PaidMadaClientError(Exception):
    def __init__(self, message: str, code: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class PaidMadaClient:
    """
    HTTP client for a running PaidMada server.

    Every call returns the "data" part of the JSON envelope. Error envelopes
    become PaidMadaClientError with the server's code; connection problems
    become NETWORK_ERROR.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key

        self.http_client = httpx.Client(
            base_url=base_url.rstrip("/") + "/api",
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.http_client.close()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.http_client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"[PAIDMADA_CLIENT] Network error on {method} {path}: {e}")
            raise PaidMadaClientError(str(e) or "Connection error", "NETWORK_ERROR") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                raise PaidMadaClientError(error.get("message", ""), error.get("code", "HTTP_ERROR"), error.get("details"))
            raise PaidMadaClientError(f"HTTP {response.status_code}", "NETWORK_ERROR")

        return body

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def get_providers(self) -> Dict[str, Any]:
        return self._request("GET", "/providers")["data"]["details"]

    def pay(
        self,
        amount: int,
        customer_phone: str,
        provider: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "provider": provider,
            "amount": amount,
            "customerPhone": customer_phone,
            "description": description,
            "reference": reference,
            "metadata": metadata,
        }
        return self._request("POST", "/pay", json=_compact(payload))["data"]

    def smart_pay(
        self,
        phone: str,
        amount: int,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "phone": phone,
            "amount": amount,
            "description": description,
            "reference": reference,
            "metadata": metadata,
        }
        return self._request("POST", "/pay/smart", json=_compact(payload))["data"]

    def get_status(
        self, provider: str, transaction_id: str, server_correlation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {
            "provider": provider,
            "transactionId": transaction_id,
            "serverCorrelationId": server_correlation_id,
        }
        return self._request("POST", "/status", json=_compact(payload))["data"]

    def detect_provider(self, phone: str) -> Dict[str, Any]:
        return self._request("GET", f"/detect/{quote(phone, safe='')}")["data"]

    def wait_for_completion(
        self,
        provider: str,
        transaction_id: str,
        server_correlation_id: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        on_status_change: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> Dict[str, Any]:
        """
        Poll the status endpoint until the transaction reaches a terminal status.

        Raises:
            PaidMadaClientError: TIMEOUT once max_attempts polls all came back pending
        """
        for attempt in range(max_attempts):
            details = self.get_status(provider, transaction_id, server_correlation_id)

            if on_status_change:
                on_status_change(details)

            if details.get("status") in TERMINAL_STATUS_VALUES:
                return details

            if attempt < max_attempts - 1:
                time.sleep(interval)

        raise PaidMadaClientError("Timed out waiting for the transaction", "TIMEOUT")


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}
