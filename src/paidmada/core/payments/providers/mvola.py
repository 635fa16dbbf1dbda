"""MVola (Telma) merchant pay adapter. API docs: https://www.mvola.mg/devportal/"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import httpx

from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentcallbackresponse import CallbackPayload
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.gatewayconfig import MVolaConfig
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType
from paidmada.core.payments.providers.base import BaseProvider, DEFAULT_TIMEOUT_SECONDS, parse_amount, utc_now_iso
from paidmada.utilities.crypto import to_base64
from paidmada.utilities.phone_utils import normalize_phone
from paidmada.utilities.status_mapper import StatusMapper
from paidmada.utilities.uniqueidgenerator import UniqueIdGenerator

logger = logging.getLogger(__name__)

MERCHANT_PAY_PATH = "/mvola/mm/transactions/type/merchantpay/1.0.0"
DESCRIPTION_MAX_LENGTH = 40
DEFAULT_DESCRIPTION = "Paiement PaidMada"


def _first_party_value(parties: Any) -> Optional[str]:
    """msisdn of the first debit or credit party, None when the list is missing or malformed."""
    if isinstance(parties, list) and parties and isinstance(parties[0], dict):
        value = parties[0].get("value")
        return str(value) if value is not None else None
    return None


class MVolaProvider(BaseProvider):
    network = Network.MVOLA
    base_url_sandbox = "https://devapi.mvola.mg"
    base_url_production = "https://api.mvola.mg"

    status_mapper = StatusMapper(Network.MVOLA, {
        "pending": TransactionStatus.PENDING,
        "success": TransactionStatus.SUCCESS,
        "completed": TransactionStatus.SUCCESS,
        "failed": TransactionStatus.FAILED,
        "rejected": TransactionStatus.FAILED,
        "expired": TransactionStatus.EXPIRED,
        "cancelled": TransactionStatus.CANCELLED,
    })

    def __init__(
        self,
        config: MVolaConfig,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(sandbox=config.sandbox, timeout=timeout, transport=transport)
        self.config = config
        self.merchant_number = normalize_phone(config.merchant_number)

    def _headers(self, access_token: str) -> dict:
        # Required on every merchant pay call, with a fresh correlation id each time
        return {
            "Authorization": f"Bearer {access_token}",
            "Version": "1.0",
            "X-CorrelationID": UniqueIdGenerator.generate_correlation_id(),
            "UserLanguage": "MG",
            "UserAccountIdentifier": f"msisdn;{self.merchant_number}",
            "partnerName": self.config.partner_name,
            "Cache-Control": "no-cache",
        }

    async def authenticate(self) -> None:
        credentials = to_base64(f"{self.config.consumer_key}:{self.config.consumer_secret}")
        await self._fetch_token(
            "POST",
            f"{self.base_url}/token",
            content="grant_type=client_credentials&scope=EXT_INT_MVOLA_SCOPE",
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/x-www-form-urlencoded",
                "Cache-Control": "no-cache",
            },
        )

    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        access_token = await self.get_valid_token()
        reference = request.reference or UniqueIdGenerator.generate_transaction_reference("MVOLA")

        metadata = [{"key": "partnerName", "value": self.config.partner_name}]
        metadata.extend({"key": key, "value": value} for key, value in (request.metadata or {}).items())

        payload = {
            "amount": str(request.amount),
            "currency": request.currency,
            "descriptionText": (request.description or DEFAULT_DESCRIPTION)[:DESCRIPTION_MAX_LENGTH],
            "requestingOrganisationTransactionReference": reference,
            "requestDate": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "originalTransactionReference": reference,
            "debitParty": [{"key": "msisdn", "value": normalize_phone(request.customer_phone)}],
            "creditParty": [{"key": "msisdn", "value": self.merchant_number}],
            "metadata": metadata,
        }

        data = await self._request(
            "initiatePayment", "POST", f"{self.base_url}{MERCHANT_PAY_PATH}",
            json=payload, headers=self._headers(access_token),
        )

        status = self.status_mapper.map(data.get("status"))
        logger.info(f"[MVOLA] Payment {reference} initiated: {data.get('status')} -> {status.value}")

        return PaymentResponse(
            success=status in (TransactionStatus.PENDING, TransactionStatus.SUCCESS),
            network=self.network,
            transaction_id=reference,
            server_correlation_id=data.get("serverCorrelationId"),
            status=status,
            message=data.get("status"),
            raw_response=data,
        )

    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        access_token = await self.get_valid_token()
        server_correlation_id = request.server_correlation_id or request.transaction_id

        data = await self._request(
            "getTransactionStatus", "GET", f"{self.base_url}{MERCHANT_PAY_PATH}/{server_correlation_id}",
            headers=self._headers(access_token),
        )

        return TransactionDetails(
            transaction_id=data.get("transactionReference") or request.transaction_id,
            server_correlation_id=data.get("serverCorrelationId"),
            network=self.network,
            type=TransactionType.PAYMENT,
            status=self.status_mapper.map(data.get("transactionStatus") or data.get("status")),
            amount=parse_amount(data.get("amount")),
            currency=data.get("currency") or DEFAULT_CURRENCY,
            fees=parse_amount(data["fees"]) if data.get("fees") else None,
            customer_phone=_first_party_value(data.get("debitParty")),
            merchant_phone=_first_party_value(data.get("creditParty")),
            description=data.get("descriptionText"),
            reference=data.get("requestingOrganisationTransactionReference"),
            created_at=data.get("creationDate") or data.get("requestDate"),
            completed_at=data.get("modificationDate"),
            raw_response=data,
        )

    @classmethod
    def parse_callback(cls, data: Mapping[str, Any]) -> CallbackPayload:
        """Flat payload: transactionReference, status, amount, debitParty[0].value."""
        return CallbackPayload(
            network=cls.network,
            transaction_id=data.get("transactionReference") or "",
            server_correlation_id=data.get("serverCorrelationId"),
            status=cls.status_mapper.map(data.get("status") or data.get("transactionStatus")),
            amount=parse_amount(data.get("amount")),
            currency=DEFAULT_CURRENCY,
            customer_phone=_first_party_value(data.get("debitParty")),
            reference=data.get("originalTransactionReference"),
            timestamp=utc_now_iso(),
            raw_payload=dict(data),
        )
