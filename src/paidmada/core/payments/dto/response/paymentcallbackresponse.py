from typing import Any, Optional

from pydantic import ConfigDict, Field

from paidmada.core.payments.dto.apimodel import ApiModel
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.core.payments.model.paymentstatus import TransactionStatus


class CallbackPayload(ApiModel):
    """A network callback normalized to the same shape whatever network sent it."""

    model_config = ConfigDict(frozen=True)

    network: Network = Field(..., alias="provider")
    transaction_id: str = ""
    server_correlation_id: Optional[str] = None
    status: TransactionStatus
    amount: float = 0
    currency: str = DEFAULT_CURRENCY
    customer_phone: Optional[str] = None
    reference: Optional[str] = None
    timestamp: str
    raw_payload: Any = None
