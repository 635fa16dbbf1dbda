import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from paidmada.config import Settings
from paidmada.core.payments.model.paynetwork import Network, NETWORK_DETAILS, NETWORK_PREFIXES
from paidmada.core.payments.service.paymentgateway import PaymentGateway
from paidmada.utilities.crypto import timing_safe_compare

logger = logging.getLogger(__name__)


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Central API key check; a no-op until API_SECRET_KEY is set
def validate_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_settings),
):
    secret_key = settings.API_SECRET_KEY
    if not secret_key:
        return

    if not x_api_key or not timing_safe_compare(x_api_key, secret_key):
        client_ip = request.client.host if request.client else "unknown"
        logger.warning(f"[API] Invalid API key from {client_ip}")
        raise HTTPException(status_code=401, detail="Invalid API key")


# Router for organizing routes
base_routes = APIRouter()
api_routes = APIRouter(dependencies=[Depends(validate_api_key)])


# ROOT ROUTE
@base_routes.get("/")
def home(gateway: PaymentGateway = Depends(get_gateway), settings: Settings = Depends(get_settings)):
    return {
        "name": settings.SERVICE_NAME,
        "version": settings.VERSION,
        "description": "Unified mobile money payment API for Madagascar",
        "documentation": "/api/docs",
        "providers": [network.value for network in gateway.available_networks()],
        "mockMode": gateway.is_simulation_mode(),
    }


@api_routes.get("/health")
def health(gateway: PaymentGateway = Depends(get_gateway)):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "providers": [network.value for network in gateway.available_networks()],
    }


@api_routes.get("/providers")
def list_providers(gateway: PaymentGateway = Depends(get_gateway)):
    available = gateway.available_networks()
    return {
        "success": True,
        "data": {
            "providers": [network.value for network in available],
            "details": {
                network.value: {
                    **NETWORK_DETAILS[network],
                    "prefixes": list(NETWORK_PREFIXES[network]),
                    "available": network in available,
                }
                for network in Network
            },
        },
    }


@api_routes.get("/docs")
def docs():
    providers = " | ".join(network.value for network in Network)
    return {
        "endpoints": [
            {"method": "GET", "path": "/api/health", "description": "Health check"},
            {"method": "GET", "path": "/api/providers", "description": "Available providers"},
            {
                "method": "POST",
                "path": "/api/pay",
                "description": "Initiate a payment",
                "body": {
                    "provider": f"{providers} (optional)",
                    "amount": "integer (min: 100)",
                    "customerPhone": "string (format: 03X XX XXX XX)",
                    "description": "string (optional)",
                    "reference": "string (optional)",
                    "metadata": "object (optional)",
                },
            },
            {
                "method": "POST",
                "path": "/api/pay/smart",
                "description": "Payment with provider auto-detection",
                "body": {
                    "phone": "string",
                    "amount": "integer",
                    "description": "string (optional)",
                    "reference": "string (optional)",
                },
            },
            {
                "method": "POST",
                "path": "/api/status",
                "description": "Check a transaction status",
                "body": {
                    "provider": providers,
                    "transactionId": "string",
                    "serverCorrelationId": "string (optional)",
                },
            },
            {"method": "GET", "path": "/api/detect/{phone}", "description": "Detect the provider of a number"},
        ]
    }
