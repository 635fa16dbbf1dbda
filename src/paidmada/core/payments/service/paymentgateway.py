import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from paidmada.core.exceptions.PaymentException import (
    InternalPaymentError,
    InvalidPhoneError,
    NetworkDetectionError,
    NetworkNotConfiguredError,
    UnknownNetworkError,
    UnknownPhoneNumberError,
)
from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentcallbackresponse import CallbackPayload
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.gatewayconfig import GatewayConfig
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.providers.airtel_money import AirtelMoneyProvider
from paidmada.core.payments.providers.base import PaymentProvider
from paidmada.core.payments.providers.mock import MockProvider
from paidmada.core.payments.providers.mvola import MVolaProvider
from paidmada.core.payments.providers.orange_money import OrangeMoneyProvider
from paidmada.utilities.network_detector import NetworkDetector
from paidmada.utilities.phone_utils import mask_phone

logger = logging.getLogger(__name__)

# Callback extraction is per network and does not need a configured adapter
CALLBACK_PARSERS = {
    Network.MVOLA: MVolaProvider.parse_callback,
    Network.ORANGE_MONEY: OrangeMoneyProvider.parse_callback,
    Network.AIRTEL_MONEY: AirtelMoneyProvider.parse_callback,
}


class PaymentGateway:
    """
    Single entry point over every configured mobile money network.

    Adapters are bound once, at construction: either one simulated adapter
    per network (mock mode) or one real adapter per supplied credential set.
    The two kinds never coexist in the same gateway.
    """

    def __init__(self, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._simulation_mode = bool(config.mock_mode and config.mock_mode.enabled)
        self._providers: Dict[Network, PaymentProvider] = (
            self._build_mock_providers() if self._simulation_mode else self._build_providers(transport)
        )

    def _build_providers(self, transport: Optional[httpx.AsyncBaseTransport]) -> Dict[Network, PaymentProvider]:
        config = self.config
        providers: Dict[Network, PaymentProvider] = {}

        if config.mvola:
            mvola_config = config.mvola.model_copy(update={"sandbox": config.sandbox})
            providers[Network.MVOLA] = MVolaProvider(mvola_config, timeout=config.request_timeout, transport=transport)
            logger.info("[GATEWAY] MVola provider initialized")

        if config.orange_money:
            orange_config = config.orange_money.model_copy(update={"sandbox": config.sandbox})
            orange = OrangeMoneyProvider(orange_config, timeout=config.request_timeout, transport=transport)
            base = config.callback_base_url.rstrip("/")
            orange.set_callback_urls(
                return_url=f"{base}/orange/return",
                cancel_url=f"{base}/orange/cancel",
                notif_url=f"{base}/orange/notify",
            )
            providers[Network.ORANGE_MONEY] = orange
            logger.info("[GATEWAY] Orange Money provider initialized")

        if config.airtel_money:
            airtel_config = config.airtel_money.model_copy(update={"sandbox": config.sandbox})
            providers[Network.AIRTEL_MONEY] = AirtelMoneyProvider(
                airtel_config, timeout=config.request_timeout, transport=transport
            )
            logger.info("[GATEWAY] Airtel Money provider initialized")

        return providers

    def _build_mock_providers(self) -> Dict[Network, PaymentProvider]:
        mock_config = self.config.mock_mode
        logger.warning("[GATEWAY] MOCK MODE ACTIVE - no real network call will be made")

        providers: Dict[Network, PaymentProvider] = {
            network: MockProvider(
                network,
                success_rate=mock_config.success_rate,
                response_delay=mock_config.response_delay,
                simulate_pending=mock_config.simulate_pending,
                pending_delay=mock_config.pending_delay,
            )
            for network in Network
        }
        logger.info(
            f"[GATEWAY] All mock providers initialized: success_rate={mock_config.success_rate}, "
            f"simulate_pending={mock_config.simulate_pending}"
        )
        return providers

    def _get_provider(self, network: Network) -> PaymentProvider:
        provider = self._providers.get(network)
        if provider is None:
            raise NetworkNotConfiguredError(network)
        return provider

    def is_simulation_mode(self) -> bool:
        return self._simulation_mode

    def has_network(self, network: Network) -> bool:
        return network in self._providers

    def available_networks(self) -> List[Network]:
        return list(self._providers)

    def simulated_adapter(self, network: Network) -> Optional[MockProvider]:
        provider = self._providers.get(network)
        return provider if isinstance(provider, MockProvider) else None

    def detect_network(self, phone: str) -> Optional[Network]:
        validation = NetworkDetector.classify(phone)
        if validation.is_valid:
            return validation.network
        return None

    async def pay(self, request: PaymentRequest) -> PaymentResponse:
        """
        Initiate a payment, auto-detecting the network from the customer's
        phone number when the request does not name one.

        Raises:
            NetworkDetectionError: no network named and none detected
            InvalidPhoneError: the phone number fails classification
            NetworkNotConfiguredError: the resolved network has no adapter
        """
        network = request.network
        if network is None:
            network = self.detect_network(request.customer_phone)
            if network is None:
                raise NetworkDetectionError()
            logger.info(f"[GATEWAY] Auto-detected network: {network.value}")

        # Checked even when the caller named the network
        validation = NetworkDetector.classify(request.customer_phone)
        if not validation.is_valid:
            raise InvalidPhoneError(validation.error, network=network, details={"reason": validation.reason})

        provider = self._get_provider(network)

        logger.info(
            f"[GATEWAY] Initiating payment with {network.value}: amount={request.amount}, "
            f"phone={mask_phone(request.customer_phone)}"
        )
        return await provider.initiate_payment(request.model_copy(update={"network": network}))

    async def smart_pay(
        self,
        phone: str,
        amount: int,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PaymentResponse:
        network = self.detect_network(phone)
        if network is None:
            raise UnknownPhoneNumberError()

        if not self.has_network(network):
            raise NetworkNotConfiguredError(network)

        return await self.pay(PaymentRequest(
            network=network,
            customer_phone=phone,
            amount=amount,
            description=description,
            reference=reference,
            metadata=metadata,
        ))

    async def get_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        provider = self._get_provider(request.network)
        return await provider.get_transaction_status(request)

    def parse_callback(self, network: Union[Network, str], payload: Any) -> CallbackPayload:
        """Normalize a raw callback body from the given network."""
        try:
            network = Network(network)
        except ValueError as e:
            raise UnknownNetworkError(network) from e

        data = payload if isinstance(payload, dict) else {}
        try:
            callback = CALLBACK_PARSERS[network](data)
        except ValidationError as e:
            raise InternalPaymentError(
                "Malformed callback payload", network=network, details=str(e)
            ) from e
        logger.info(
            f"[GATEWAY] Callback from {network.value}: transaction_id={callback.transaction_id}, "
            f"status={callback.status.value}"
        )
        return callback

    async def aclose(self):
        for provider in self._providers.values():
            await provider.aclose()
