import logging

from fastapi import APIRouter, Depends, Path

from paidmada.core.payments.dto.request.paymentrequest import (
    PaymentRequestSchema,
    SmartPayRequest,
    TransactionStatusRequest,
)
from paidmada.core.payments.service.paymentgateway import PaymentGateway
from paidmada.exceptions import error_response
from paidmada.routes import get_gateway, validate_api_key

logger = logging.getLogger(__name__)

payment_routes = APIRouter(dependencies=[Depends(validate_api_key)])


@payment_routes.post("/pay")
async def create_payment(payload: PaymentRequestSchema, gateway: PaymentGateway = Depends(get_gateway)):
    result = await gateway.pay(payload)
    return {"success": True, "data": result.to_api()}


@payment_routes.post("/pay/smart")
async def smart_payment(payload: SmartPayRequest, gateway: PaymentGateway = Depends(get_gateway)):
    result = await gateway.smart_pay(
        payload.phone,
        payload.amount,
        description=payload.description,
        reference=payload.reference,
        metadata=payload.metadata,
    )
    return {"success": True, "data": result.to_api()}


@payment_routes.post("/status")
async def transaction_status(payload: TransactionStatusRequest, gateway: PaymentGateway = Depends(get_gateway)):
    result = await gateway.get_status(payload)
    return {"success": True, "data": result.to_api()}


@payment_routes.get("/detect/{phone}")
def detect_provider(
    phone: str = Path(..., description="Phone number to classify"),
    gateway: PaymentGateway = Depends(get_gateway),
):
    network = gateway.detect_network(phone)
    if network is None:
        return error_response(400, "UNKNOWN_PHONE", "Phone number not recognized")

    return {
        "success": True,
        "data": {
            "phone": phone,
            "provider": network.value,
            "available": gateway.has_network(network),
        },
    }
