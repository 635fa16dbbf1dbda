"""Orange Money web payment adapter. API docs: https://developer.orange.com/apis/om-webpay"""

import logging
from typing import Any, Mapping, Optional

import httpx

from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentcallbackresponse import CallbackPayload
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.gatewayconfig import OrangeMoneyConfig
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType
from paidmada.core.payments.providers.base import BaseProvider, DEFAULT_TIMEOUT_SECONDS, parse_amount, utc_now_iso
from paidmada.utilities.crypto import to_base64
from paidmada.utilities.status_mapper import StatusMapper
from paidmada.utilities.uniqueidgenerator import UniqueIdGenerator

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.orange.com/oauth/v3/token"
DEFAULT_DESCRIPTION = "Paiement PaidMada"

# Native tokens for the web payment creation result
REDIRECT_ISSUED = "INITIATED"
CREATION_FAILED = "FAILED"


class OrangeMoneyProvider(BaseProvider):
    """
    Orange Money does not settle synchronously: creating a web payment only
    issues a redirect URL. The payment is pending until the customer completes
    it and Orange notifies us (or a later status query says otherwise).
    """

    network = Network.ORANGE_MONEY
    base_url_sandbox = "https://api.orange.com/orange-money-webpay/dev/v1"
    base_url_production = "https://api.orange.com/orange-money-webpay/mg/v1"

    status_mapper = StatusMapper(Network.ORANGE_MONEY, {
        "INITIATED": TransactionStatus.PENDING,
        "PENDING": TransactionStatus.PENDING,
        "SUCCESS": TransactionStatus.SUCCESS,
        "FAILED": TransactionStatus.FAILED,
        "EXPIRED": TransactionStatus.EXPIRED,
        "CANCELLED": TransactionStatus.CANCELLED,
    })

    def __init__(
        self,
        config: OrangeMoneyConfig,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(sandbox=config.sandbox, timeout=timeout, transport=transport)
        self.config = config
        self.return_url: Optional[str] = None
        self.cancel_url: Optional[str] = None
        self.notif_url: Optional[str] = None

    def set_callback_urls(self, return_url: str = None, cancel_url: str = None, notif_url: str = None):
        self.return_url = return_url
        self.cancel_url = cancel_url
        self.notif_url = notif_url

    async def authenticate(self) -> None:
        credentials = to_base64(f"{self.config.client_id}:{self.config.client_secret}")
        await self._fetch_token(
            "POST",
            TOKEN_URL,
            content="grant_type=client_credentials",
            headers={
                "Authorization": f"Basic {credentials}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )

    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        access_token = await self.get_valid_token()
        reference = request.reference or UniqueIdGenerator.generate_transaction_reference("OM")
        fallback_url = request.callback_url or ""

        payload = {
            "merchant_key": self.config.merchant_key,
            "currency": "OUV",  # Orange Universal Value
            "order_id": reference,
            "amount": request.amount,
            "return_url": self.return_url or fallback_url,
            "cancel_url": self.cancel_url or fallback_url,
            "notif_url": self.notif_url or fallback_url,
            "lang": "fr",
            "reference": request.description or DEFAULT_DESCRIPTION,
        }

        data = await self._request(
            "initiatePayment", "POST", f"{self.base_url}/webpayment",
            json=payload, headers={"Authorization": f"Bearer {access_token}"},
        )

        redirect_issued = data.get("status") == 201 or data.get("message") == "OK"
        status = self.status_mapper.map(REDIRECT_ISSUED if redirect_issued else CREATION_FAILED)
        logger.info(f"[ORANGE_MONEY] Web payment {reference} created: redirect_issued={redirect_issued}")

        return PaymentResponse(
            success=redirect_issued,
            network=self.network,
            transaction_id=reference,
            server_correlation_id=data.get("pay_token"),
            status=status,
            payment_url=data.get("payment_url"),
            message=data.get("message"),
            raw_response=data,
        )

    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        access_token = await self.get_valid_token()

        data = await self._request(
            "getTransactionStatus", "POST", f"{self.base_url}/transactionstatus",
            json={"order_id": request.transaction_id, "pay_token": request.server_correlation_id},
            headers={"Authorization": f"Bearer {access_token}"},
        )

        return TransactionDetails(
            transaction_id=data.get("order_id") or request.transaction_id,
            server_correlation_id=data.get("txnid"),
            network=self.network,
            type=TransactionType.PAYMENT,
            status=self.status_mapper.map(data.get("status")),
            amount=parse_amount(data.get("amount")),
            currency=DEFAULT_CURRENCY,
            description=data.get("reference"),
            reference=data.get("order_id"),
            created_at=data.get("created_at") or utc_now_iso(),
            completed_at=data.get("completed_at"),
            raw_response=data,
        )

    @classmethod
    def parse_callback(cls, data: Mapping[str, Any]) -> CallbackPayload:
        """Flat payload: order_id, txnid, status, amount."""
        return CallbackPayload(
            network=cls.network,
            transaction_id=data.get("order_id") or "",
            server_correlation_id=data.get("txnid"),
            status=cls.status_mapper.map(data.get("status")),
            amount=parse_amount(data.get("amount")),
            currency=DEFAULT_CURRENCY,
            reference=data.get("order_id"),
            timestamp=utc_now_iso(),
            raw_payload=dict(data),
        )
