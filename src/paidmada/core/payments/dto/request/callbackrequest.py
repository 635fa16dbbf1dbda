from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict


class CallbackModel(BaseModel):
    # Networks add fields over time; keep whatever they send
    model_config = ConfigDict(extra="allow")


class MVolaParty(CallbackModel):
    key: Optional[str] = None
    value: Optional[str] = None


class MVolaCallback(CallbackModel):
    transactionReference: Optional[str] = None
    serverCorrelationId: Optional[str] = None
    status: Optional[str] = None
    transactionStatus: Optional[str] = None
    amount: Optional[Union[str, float]] = None
    debitParty: Optional[List[MVolaParty]] = None
    creditParty: Optional[List[MVolaParty]] = None
    originalTransactionReference: Optional[str] = None


class OrangeCallback(CallbackModel):
    order_id: Optional[str] = None
    txnid: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Union[str, float]] = None
    message: Optional[str] = None


class AirtelTransaction(CallbackModel):
    id: Optional[str] = None
    airtel_money_id: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[Union[str, float]] = None
    msisdn: Optional[str] = None


class AirtelCallback(CallbackModel):
    transaction: Optional[AirtelTransaction] = None
