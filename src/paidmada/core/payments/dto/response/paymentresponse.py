from typing import Any, Optional

from pydantic import ConfigDict, Field

from paidmada.core.payments.dto.apimodel import ApiModel
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.model.paymentstatus import TransactionStatus


class PaymentResponse(ApiModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    network: Network = Field(..., alias="provider")
    transaction_id: str
    server_correlation_id: Optional[str] = None
    status: TransactionStatus
    # Only set by redirect-style networks (Orange Money web payment)
    payment_url: Optional[str] = None
    message: Optional[str] = None
    raw_response: Any = None
