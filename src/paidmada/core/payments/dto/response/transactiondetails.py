from typing import Any, Optional

from pydantic import ConfigDict, Field

from paidmada.core.payments.dto.apimodel import ApiModel
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus, TransactionType


class TransactionDetails(ApiModel):
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    server_correlation_id: Optional[str] = None
    network: Network = Field(..., alias="provider")
    type: TransactionType = TransactionType.PAYMENT
    status: TransactionStatus
    amount: float = 0
    currency: str = DEFAULT_CURRENCY
    fees: Optional[float] = None
    customer_phone: Optional[str] = None
    merchant_phone: Optional[str] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    raw_response: Any = None
