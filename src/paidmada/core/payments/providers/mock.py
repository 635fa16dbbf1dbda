"""In-memory stand-in for a network adapter, used when the gateway runs in simulation mode."""

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.dto.response.paymentresponse import PaymentResponse
from paidmada.core.payments.dto.response.transactiondetails import TransactionDetails
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType
from paidmada.utilities.phone_utils import mask_phone
from paidmada.utilities.uniqueidgenerator import UniqueIdGenerator

logger = logging.getLogger(__name__)

MIN_RANDOM_DELAY = 0.5
MAX_RANDOM_DELAY = 1.5
MOCK_PAYMENT_URL = "https://mock.orange.com/pay/{transaction_id}"

STATUS_MESSAGES = {
    TransactionStatus.PENDING: "Transaction pending confirmation",
    TransactionStatus.SUCCESS: "Transaction successful",
    TransactionStatus.FAILED: "Transaction failed",
    TransactionStatus.EXPIRED: "Transaction expired",
    TransactionStatus.CANCELLED: "Transaction cancelled",
}


@dataclass
class StoredTransaction:
    request: PaymentRequest
    response: PaymentResponse
    status: TransactionStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class MockProvider:
    """
    Simulated adapter with the same contract as the HTTP adapters.

    Transactions live in a dict guarded by a lock. With simulate_pending,
    a new payment starts pending and a loop timer settles it to success or
    failure after pending_delay seconds; otherwise the outcome is drawn
    immediately against success_rate (a percentage, 0 to 100).
    """

    def __init__(
        self,
        network: Network,
        success_rate: int = 90,
        response_delay: Optional[float] = None,
        simulate_pending: bool = True,
        pending_delay: float = 3.0,
    ):
        self.network = network
        self.success_rate = success_rate
        self.response_delay = response_delay
        self.simulate_pending = simulate_pending
        self.pending_delay = pending_delay

        self._transactions: Dict[str, StoredTransaction] = {}
        self._lock = threading.Lock()
        self._timers: Dict[str, asyncio.TimerHandle] = {}

        logger.info(
            f"[MOCK] {network.value} provider initialized: "
            f"success_rate={success_rate}, simulate_pending={simulate_pending}"
        )

    async def _delay(self):
        delay = self.response_delay
        if delay is None:
            delay = random.uniform(MIN_RANDOM_DELAY, MAX_RANDOM_DELAY)
        if delay > 0:
            await asyncio.sleep(delay)

    def _should_succeed(self) -> bool:
        return random.random() * 100 < self.success_rate

    async def authenticate(self) -> None:
        await self._delay()
        logger.info(f"[MOCK] {self.network.value} authentication successful")

    async def initiate_payment(self, request: PaymentRequest) -> PaymentResponse:
        await self._delay()

        transaction_id = UniqueIdGenerator.generate_transaction_reference("MOCK")
        server_correlation_id = f"CORR-{int(time.time() * 1000)}"
        will_succeed = self._should_succeed()
        final_status = TransactionStatus.SUCCESS if will_succeed else TransactionStatus.FAILED
        initial_status = TransactionStatus.PENDING if self.simulate_pending else final_status

        response = PaymentResponse(
            success=True,
            network=self.network,
            transaction_id=transaction_id,
            server_correlation_id=server_correlation_id,
            status=initial_status,
            payment_url=(
                MOCK_PAYMENT_URL.format(transaction_id=transaction_id)
                if self.network == Network.ORANGE_MONEY else None
            ),
            message=STATUS_MESSAGES[initial_status],
            raw_response={
                "mock": True,
                "request": request.to_api(),
                "simulatedAt": datetime.now(timezone.utc).isoformat(),
            },
        )

        stored = StoredTransaction(request=request, response=response, status=initial_status)
        if not self.simulate_pending:
            stored.completed_at = stored.created_at

        with self._lock:
            self._transactions[transaction_id] = stored

        if self.simulate_pending:
            loop = asyncio.get_running_loop()
            self._timers[transaction_id] = loop.call_later(
                self.pending_delay, self._settle, transaction_id, final_status
            )

        logger.info(
            f"[MOCK] Payment initiated: network={self.network.value}, transaction_id={transaction_id}, "
            f"amount={request.amount}, phone={mask_phone(request.customer_phone)}, status={initial_status.value}"
        )
        return response

    def _settle(self, transaction_id: str, final_status: TransactionStatus):
        self._timers.pop(transaction_id, None)
        with self._lock:
            stored = self._transactions.get(transaction_id)
            # A forced status wins over the scheduled outcome
            if stored is None or stored.status != TransactionStatus.PENDING:
                return
            stored.status = final_status
            stored.completed_at = datetime.now(timezone.utc)
        logger.info(f"[MOCK] Transaction {transaction_id} -> {final_status.value}")

    async def get_transaction_status(self, request: TransactionStatusRequest) -> TransactionDetails:
        await self._delay()

        with self._lock:
            stored = self._transactions.get(request.transaction_id)
            if stored is not None:
                status = stored.status
                completed_at = stored.completed_at

        if stored is None:
            # Unknown ids answer "failed" instead of raising, like the real networks do
            return TransactionDetails(
                transaction_id=request.transaction_id,
                server_correlation_id=request.server_correlation_id,
                network=self.network,
                type=TransactionType.PAYMENT,
                status=TransactionStatus.FAILED,
                amount=0,
                currency=DEFAULT_CURRENCY,
                description="Transaction not found",
                created_at=datetime.now(timezone.utc).isoformat(),
                raw_response={"mock": True, "error": "NOT_FOUND"},
            )

        return TransactionDetails(
            transaction_id=request.transaction_id,
            server_correlation_id=stored.response.server_correlation_id,
            network=self.network,
            type=TransactionType.PAYMENT,
            status=status,
            amount=stored.request.amount,
            currency=DEFAULT_CURRENCY,
            customer_phone=stored.request.customer_phone,
            description=stored.request.description,
            reference=stored.request.reference,
            created_at=stored.created_at.isoformat(),
            completed_at=completed_at.isoformat() if completed_at else None,
            raw_response={"mock": True},
        )

    # Test helpers

    def set_transaction_status(self, transaction_id: str, status: TransactionStatus) -> bool:
        with self._lock:
            stored = self._transactions.get(transaction_id)
            if stored is None:
                return False
            stored.status = status
            if status != TransactionStatus.PENDING:
                stored.completed_at = datetime.now(timezone.utc)
        return True

    def clear_transactions(self):
        with self._lock:
            self._transactions.clear()
        self._cancel_timers()
        logger.info(f"[MOCK] Transactions cleared for {self.network.value}")

    def _cancel_timers(self):
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    async def aclose(self):
        self._cancel_timers()
