"""
Inbound notifications from the networks.

Each POST goes through the same gate: optional IP allow-list (403), optional
HMAC-SHA256 signature over the raw body (401), then a schema check (400).
Callback routes are not behind the API key: the networks cannot send it.
"""

import json
import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from paidmada.config import Settings
from paidmada.core.exceptions.PaymentException import PaymentError
from paidmada.core.payments.dto.request.callbackrequest import AirtelCallback, MVolaCallback, OrangeCallback
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.service.paymentgateway import PaymentGateway
from paidmada.routes import get_gateway, get_settings
from paidmada.utilities.crypto import mask_sensitive_data, sanitize_callback_data, verify_hmac_signature

logger = logging.getLogger(__name__)

callback_routes = APIRouter()

CALLBACK_SCHEMAS = {
    Network.MVOLA: MVolaCallback,
    Network.ORANGE_MONEY: OrangeCallback,
    Network.AIRTEL_MONEY: AirtelCallback,
}

SIGNATURE_HEADERS = {
    Network.MVOLA: "X-MVola-Signature",
    Network.ORANGE_MONEY: "X-Orange-Signature",
    Network.AIRTEL_MONEY: "X-Airtel-Signature",
}

ORANGE_RETURN_FIELDS = ("order_id", "status", "txnid", "amount")

HTML_HEADERS = {"X-Content-Type-Options": "nosniff"}

RETURN_PAGE = """<!DOCTYPE html>
<html lang="fr">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Paiement traité</title>
  <style>
    body {{ font-family: system-ui, sans-serif; text-align: center; padding: 50px; }}
    h1 {{ color: #10b981; }}
  </style>
</head>
<body>
  <h1>Paiement traité</h1>
  <p>Vous pouvez fermer cette fenêtre.</p>
  <script>
    (function() {{
      var data = {data};
      var origin = {origin};
      if (window.opener) {{
        window.opener.postMessage({{ type: 'payment_complete', data: data }}, origin);
      }}
      setTimeout(function() {{ window.close(); }}, 3000);
    }})();
  </script>
</body>
</html>"""

CANCEL_PAGE = """<!DOCTYPE html>
<html lang="fr">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Paiement annulé</title>
  <style>
    body {{ font-family: system-ui, sans-serif; text-align: center; padding: 50px; }}
    h1 {{ color: #ef4444; }}
  </style>
</head>
<body>
  <h1>Paiement annulé</h1>
  <p>Vous pouvez fermer cette fenêtre.</p>
  <script>
    (function() {{
      var origin = {origin};
      if (window.opener) {{
        window.opener.postMessage({{ type: 'payment_cancelled' }}, origin);
      }}
      setTimeout(function() {{ window.close(); }}, 3000);
    }})();
  </script>
</body>
</html>"""


def _client_ip(request: Request) -> str:
    host = request.client.host if request.client else ""
    # IPv4-mapped IPv6
    if host.startswith("::ffff:"):
        host = host[len("::ffff:"):]
    return host


def _decode_body(request: Request, raw_body: bytes):
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(raw_body.decode("utf-8")))
    return json.loads(raw_body or b"{}")


async def _handle_callback(
    request: Request, network: Network, gateway: PaymentGateway, settings: Settings
) -> JSONResponse:
    client_ip = _client_ip(request)
    allowed_ips = settings.callback_allowed_ips(network)
    if allowed_ips and client_ip not in allowed_ips:
        logger.warning(f"[CALLBACK] {network.value} - IP not allowed: {client_ip}")
        return JSONResponse(status_code=403, content={"error": "Forbidden"})

    raw_body = await request.body()

    secret = settings.callback_secret(network)
    if secret:
        signature = request.headers.get("X-Signature") or request.headers.get(SIGNATURE_HEADERS[network])
        if not signature or not verify_hmac_signature(raw_body.decode("utf-8", errors="replace"), signature, secret):
            logger.warning(f"[CALLBACK] {network.value} - Invalid signature")
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    try:
        payload = _decode_body(request, raw_body)
        validated = CALLBACK_SCHEMAS[network].model_validate(payload)
        callback = gateway.parse_callback(network, validated.model_dump(exclude_none=True))
    except (ValueError, PaymentError) as e:
        logger.error(f"[CALLBACK] {network.value} error: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid callback"})

    logger.info(f"[CALLBACK] {network.value} {mask_sensitive_data(callback.to_api())}")
    return JSONResponse(content={"received": True})


@callback_routes.post("/mvola")
async def mvola_callback(
    request: Request,
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    return await _handle_callback(request, Network.MVOLA, gateway, settings)


@callback_routes.post("/orange/notify")
async def orange_notify_callback(
    request: Request,
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    return await _handle_callback(request, Network.ORANGE_MONEY, gateway, settings)


@callback_routes.post("/airtel")
async def airtel_callback(
    request: Request,
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    return await _handle_callback(request, Network.AIRTEL_MONEY, gateway, settings)


@callback_routes.get("/orange/return", response_class=HTMLResponse)
def orange_return(request: Request, settings: Settings = Depends(get_settings)):
    # Only whitelisted query fields reach the page, stripped of HTML-significant characters
    data = sanitize_callback_data(dict(request.query_params), ORANGE_RETURN_FIELDS)
    html = RETURN_PAGE.format(data=json.dumps(data), origin=json.dumps(settings.CALLBACK_ALLOWED_ORIGIN))
    return HTMLResponse(content=html, headers=HTML_HEADERS)


@callback_routes.get("/orange/cancel", response_class=HTMLResponse)
def orange_cancel(settings: Settings = Depends(get_settings)):
    html = CANCEL_PAGE.format(origin=json.dumps(settings.CALLBACK_ALLOWED_ORIGIN))
    return HTMLResponse(content=html, headers=HTML_HEADERS)
