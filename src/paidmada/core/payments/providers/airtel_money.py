"""Airtel Money collection and disbursement adapter. API docs: https://developers.airtel.africa/"""

import logging
from typing import Any, Mapping, Optional

import httpx
from cryptography.exceptions import UnsupportedAlgorithm

from paidmada.core.exceptions.PaymentException import InternalPaymentError
from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentcallbackresponse import CallbackPayload
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.gatewayconfig import AirtelMoneyConfig
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType
from paidmada.core.payments.providers.base import (
    BaseProvider,
    DEFAULT_TIMEOUT_SECONDS,
    as_dict,
    parse_amount,
    utc_now_iso,
)
from paidmada.utilities.crypto import encrypt_with_public_key
from paidmada.utilities.phone_utils import normalize_phone, strip_leading_zero, mask_phone
from paidmada.utilities.status_mapper import StatusMapper
from paidmada.utilities.uniqueidgenerator import UniqueIdGenerator

logger = logging.getLogger(__name__)

COUNTRY = "MG"


def _unwrap(body: Any) -> dict:
    """Airtel wraps most payloads in a top-level "data" object."""
    body = as_dict(body)
    return as_dict(body.get("data")) or body


def _response_status(body: Any) -> dict:
    status = body.get("status") if isinstance(body, dict) else None
    return status if isinstance(status, dict) else {}


class AirtelMoneyProvider(BaseProvider):
    network = Network.AIRTEL_MONEY
    base_url_sandbox = "https://openapiuat.airtel.africa"
    base_url_production = "https://openapi.airtel.africa"

    status_mapper = StatusMapper(Network.AIRTEL_MONEY, {
        "DP00800001001": TransactionStatus.SUCCESS,
        "TS": TransactionStatus.SUCCESS,
        "TIP": TransactionStatus.PENDING,
        "TF": TransactionStatus.FAILED,
        "pending": TransactionStatus.PENDING,
        "success": TransactionStatus.SUCCESS,
        "successful": TransactionStatus.SUCCESS,
        "failed": TransactionStatus.FAILED,
        "expired": TransactionStatus.EXPIRED,
    })

    def __init__(
        self,
        config: AirtelMoneyConfig,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # Country and currency headers go on every call, token request included
        super().__init__(
            sandbox=config.sandbox,
            timeout=timeout,
            transport=transport,
            headers={"X-Country": COUNTRY, "X-Currency": DEFAULT_CURRENCY},
        )
        self.config = config

    async def authenticate(self) -> None:
        await self._fetch_token(
            "POST",
            f"{self.base_url}/auth/oauth2/token",
            json={
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "grant_type": "client_credentials",
            },
        )

    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        """USSD push collection. Airtel expects the local number without its leading zero."""
        access_token = await self.get_valid_token()
        reference = request.reference or UniqueIdGenerator.generate_transaction_reference("AIRTEL")
        msisdn = strip_leading_zero(normalize_phone(request.customer_phone))

        payload = {
            "reference": reference,
            "subscriber": {"country": COUNTRY, "currency": DEFAULT_CURRENCY, "msisdn": msisdn},
            "transaction": {
                "amount": request.amount,
                "country": COUNTRY,
                "currency": DEFAULT_CURRENCY,
                "id": reference,
            },
        }

        body = await self._request(
            "initiatePayment", "POST", f"{self.base_url}/merchant/v1/payments/",
            json=payload, headers={"Authorization": f"Bearer {access_token}"},
        )

        data = _unwrap(body)
        transaction = as_dict(data.get("transaction"))
        response_status = _response_status(body)
        status = self.status_mapper.map(transaction.get("status") or response_status.get("response_code"))
        logger.info(f"[AIRTEL_MONEY] Payment {reference} to {mask_phone(msisdn)} initiated: {status.value}")

        return PaymentResponse(
            success=status in (TransactionStatus.PENDING, TransactionStatus.SUCCESS),
            network=self.network,
            transaction_id=reference,
            server_correlation_id=transaction.get("id") or transaction.get("airtel_money_id"),
            status=status,
            message=response_status.get("message") or transaction.get("message"),
            raw_response=body,
        )

    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        access_token = await self.get_valid_token()

        body = await self._request(
            "getTransactionStatus", "GET", f"{self.base_url}/standard/v1/payments/{request.transaction_id}",
            headers={"Authorization": f"Bearer {access_token}"},
        )

        transaction = as_dict(_unwrap(body).get("transaction"))
        return TransactionDetails(
            transaction_id=transaction.get("id") or request.transaction_id,
            server_correlation_id=transaction.get("airtel_money_id"),
            network=self.network,
            type=TransactionType.PAYMENT,
            status=self.status_mapper.map(transaction.get("status")),
            amount=parse_amount(transaction.get("amount")),
            currency=DEFAULT_CURRENCY,
            customer_phone=transaction.get("msisdn"),
            description=transaction.get("message"),
            reference=transaction.get("id"),
            created_at=transaction.get("created_at") or utc_now_iso(),
            raw_response=body,
        )

    async def disburse(self, phone: str, amount: int, reference: Optional[str] = None) -> PaymentResponse:
        """
        Send money from the merchant wallet to a subscriber.

        The only Airtel call that carries the PIN, RSA-encrypted with the
        public key issued by Airtel.
        """
        try:
            encrypted_pin = encrypt_with_public_key(self.config.pin, self.config.public_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise InternalPaymentError(
                "[disburse] Unable to encrypt the PIN with the configured public key",
                network=self.network,
                details=str(e),
            ) from e

        access_token = await self.get_valid_token()
        txn_reference = reference or UniqueIdGenerator.generate_transaction_reference("AIRTEL-OUT")
        msisdn = strip_leading_zero(normalize_phone(phone))

        payload = {
            "payee": {"msisdn": msisdn},
            "reference": txn_reference,
            "pin": encrypted_pin,
            "transaction": {"amount": amount, "id": txn_reference},
        }

        body = await self._request(
            "disburse", "POST", f"{self.base_url}/standard/v1/disbursements/",
            json=payload, headers={"Authorization": f"Bearer {access_token}"},
        )

        transaction = as_dict(_unwrap(body).get("transaction"))
        status = self.status_mapper.map(transaction.get("status"))
        logger.info(f"[AIRTEL_MONEY] Disbursement {txn_reference} to {mask_phone(msisdn)}: {status.value}")

        return PaymentResponse(
            success=status in (TransactionStatus.PENDING, TransactionStatus.SUCCESS),
            network=self.network,
            transaction_id=txn_reference,
            server_correlation_id=transaction.get("id"),
            status=status,
            message=_response_status(body).get("message"),
            raw_response=body,
        )

    @classmethod
    def parse_callback(cls, data: Mapping[str, Any]) -> CallbackPayload:
        # Airtel nests the fields under "transaction"; some sandboxes send them flat
        transaction = as_dict(data.get("transaction")) or data
        return CallbackPayload(
            network=cls.network,
            transaction_id=transaction.get("id") or "",
            server_correlation_id=transaction.get("airtel_money_id"),
            status=cls.status_mapper.map(transaction.get("status")),
            amount=parse_amount(transaction.get("amount")),
            currency=DEFAULT_CURRENCY,
            customer_phone=transaction.get("msisdn"),
            reference=transaction.get("id"),
            timestamp=utc_now_iso(),
            raw_payload=dict(data),
        )
