import asyncio
import base64
import json
import time

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import padding

from paidmada.core.exceptions.PaymentException import (
    AuthenticationError,
    InternalPaymentError,
    UpstreamNotFoundError,
    UpstreamServerError,
    UpstreamValidationError,
)
from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.model.authtoken import AuthToken
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.model.paymentstatus import TransactionStatus
from paidmada.core.payments.providers.airtel_money import AirtelMoneyProvider
from paidmada.core.payments.providers.mvola import MVolaProvider
from paidmada.core.payments.providers.orange_money import OrangeMoneyProvider

TOKEN_BODY = {"access_token": "tok-123", "token_type": "Bearer", "expires_in": 3600}


class Upstream:
    """Records requests and answers them from a path -> response table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for path, answer in self.routes.items():
            if request.url.path.startswith(path):
                if isinstance(answer, Exception):
                    raise answer
                if callable(answer):
                    return answer(request)
                # A fresh response per call, the same route can be hit twice
                return httpx.Response(answer.status_code, headers=answer.headers, content=answer.content)
        return httpx.Response(404, json={"error": "no route"})

    def calls_to(self, path):
        return [request for request in self.requests if request.url.path.startswith(path)]

    @property
    def transport(self):
        return httpx.MockTransport(self)


def run(provider, coroutine_factory):
    async def wrapper():
        try:
            return await coroutine_factory()
        finally:
            await provider.aclose()
    return asyncio.run(wrapper())


# MVola

def test_mvola_payment_payload_and_headers(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(202, json={"status": "pending", "serverCorrelationId": "corr-1"}),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(
        amount=1500,
        customer_phone="+261 34 12 345 67",
        description="A description that is definitely longer than forty characters",
        metadata={"orderId": "42"},
    )

    response = run(provider, lambda: provider.initiate_payment(request))

    assert response.success
    assert response.status == TransactionStatus.PENDING
    assert response.network == Network.MVOLA
    assert response.server_correlation_id == "corr-1"
    assert response.transaction_id.startswith("MVOLA-")

    token_request = upstream.calls_to("/token")[0]
    assert token_request.url.host == "devapi.mvola.mg"
    assert token_request.headers["Authorization"] == "Basic " + base64.b64encode(b"mvola-key:mvola-secret").decode()
    assert token_request.content == b"grant_type=client_credentials&scope=EXT_INT_MVOLA_SCOPE"

    pay_request = upstream.calls_to("/mvola/mm/transactions")[0]
    assert pay_request.headers["Authorization"] == "Bearer tok-123"
    assert pay_request.headers["Version"] == "1.0"
    assert pay_request.headers["X-CorrelationID"]
    assert pay_request.headers["UserLanguage"] == "MG"
    assert pay_request.headers["UserAccountIdentifier"] == "msisdn;0340000000"
    assert pay_request.headers["partnerName"] == "Test Shop"

    payload = json.loads(pay_request.content)
    assert payload["amount"] == "1500"
    assert payload["currency"] == "MGA"
    assert len(payload["descriptionText"]) == 40
    assert payload["debitParty"] == [{"key": "msisdn", "value": "0341234567"}]
    assert payload["creditParty"] == [{"key": "msisdn", "value": "0340000000"}]
    assert payload["metadata"][0] == {"key": "partnerName", "value": "Test Shop"}
    assert {"key": "orderId", "value": "42"} in payload["metadata"]


def test_mvola_default_description_and_caller_reference(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(200, json={"status": "completed"}),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567", reference="ORDER-7")

    response = run(provider, lambda: provider.initiate_payment(request))

    payload = json.loads(upstream.calls_to("/mvola/mm/transactions")[0].content)
    assert payload["descriptionText"] == "Paiement PaidMada"
    assert payload["requestingOrganisationTransactionReference"] == "ORDER-7"
    assert response.transaction_id == "ORDER-7"
    assert response.status == TransactionStatus.SUCCESS


def test_mvola_transaction_status(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(200, json={
            "transactionStatus": "completed",
            "serverCorrelationId": "corr-1",
            "transactionReference": "MV-998",
            "amount": "1500",
            "fees": "25",
            "debitParty": [{"key": "msisdn", "value": "0341234567"}],
            "creditParty": [{"key": "msisdn", "value": "0340000000"}],
        }),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = TransactionStatusRequest(network=Network.MVOLA, transaction_id="MVOLA-1", server_correlation_id="corr-1")

    details = run(provider, lambda: provider.get_transaction_status(request))

    status_request = upstream.calls_to("/mvola/mm/transactions")[0]
    assert status_request.method == "GET"
    assert status_request.url.path.endswith("/corr-1")
    assert status_request.headers["partnerName"] == "Test Shop"
    assert details.status == TransactionStatus.SUCCESS
    assert details.amount == 1500.0
    assert details.fees == 25.0
    assert details.customer_phone == "0341234567"
    assert details.transaction_id == "MV-998"


def test_token_is_cached_between_calls(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(200, json={"status": "pending"}),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567")

    async def pay_twice():
        await provider.initiate_payment(request)
        await provider.initiate_payment(request)

    run(provider, pay_twice)

    assert len(upstream.calls_to("/token")) == 1
    assert len(upstream.calls_to("/mvola/mm/transactions")) == 2


def test_concurrent_callers_share_one_refresh(mvola_config):
    token_calls = []

    async def handler(request):
        if request.url.path == "/token":
            token_calls.append(request)
            await asyncio.sleep(0.05)
            return httpx.Response(200, json=TOKEN_BODY)
        return httpx.Response(200, json={"status": "pending"})

    provider = MVolaProvider(mvola_config, transport=httpx.MockTransport(handler))

    async def many():
        return await asyncio.gather(*(provider.get_valid_token() for _ in range(10)))

    tokens = run(provider, many)

    assert tokens == ["tok-123"] * 10
    assert len(token_calls) == 1


def test_token_inside_expiry_margin_is_refreshed(mvola_config):
    upstream = Upstream({"/token": httpx.Response(200, json=TOKEN_BODY)})
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    # 30 seconds left is inside the 60 second margin
    provider._token = AuthToken(access_token="old", token_type="Bearer", expires_in=30, expires_at=time.time() + 30)

    token = run(provider, provider.get_valid_token)

    assert token == "tok-123"
    assert len(upstream.calls_to("/token")) == 1


def test_authentication_failure(mvola_config):
    upstream = Upstream({"/token": httpx.Response(401, json={"error": "invalid_client"})})
    provider = MVolaProvider(mvola_config, transport=upstream.transport)

    with pytest.raises(AuthenticationError) as exc_info:
        run(provider, provider.authenticate)

    assert exc_info.value.network == Network.MVOLA
    assert exc_info.value.details == {"error": "invalid_client"}


def test_malformed_token_response_is_an_authentication_error(mvola_config):
    upstream = Upstream({"/token": httpx.Response(200, json={"token_type": "Bearer"})})
    provider = MVolaProvider(mvola_config, transport=upstream.transport)

    with pytest.raises(AuthenticationError):
        run(provider, provider.authenticate)


@pytest.mark.parametrize("status_code, error_class", [
    (401, AuthenticationError),
    (403, AuthenticationError),
    (400, UpstreamValidationError),
    (404, UpstreamNotFoundError),
    (500, UpstreamServerError),
    (503, UpstreamServerError),
    (409, InternalPaymentError),
])
def test_http_errors_are_translated(mvola_config, status_code, error_class):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(status_code, json={"errorCode": "X1"}),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567")

    with pytest.raises(error_class) as exc_info:
        run(provider, lambda: provider.initiate_payment(request))

    assert exc_info.value.network == Network.MVOLA
    assert exc_info.value.details == {"errorCode": "X1"}


def test_timeout_is_a_server_error(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.ReadTimeout("timed out"),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567")

    with pytest.raises(UpstreamServerError):
        run(provider, lambda: provider.initiate_payment(request))


def test_connection_error_is_internal(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.ConnectError("connection refused"),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567")

    with pytest.raises(InternalPaymentError) as exc_info:
        run(provider, lambda: provider.initiate_payment(request))

    assert "connection refused" in exc_info.value.details


# Orange Money

def test_orange_redirect_maps_to_pending(orange_config):
    upstream = Upstream({
        "/oauth/v3/token": httpx.Response(200, json=TOKEN_BODY),
        "/orange-money-webpay/dev/v1/webpayment": httpx.Response(201, json={
            "status": 201,
            "message": "OK",
            "pay_token": "pt-1",
            "payment_url": "https://webpayment.orange-money.com/payment/pay_token/pt-1",
        }),
    })
    provider = OrangeMoneyProvider(orange_config, transport=upstream.transport)
    provider.set_callback_urls(
        return_url="https://shop.mg/api/callback/orange/return",
        cancel_url="https://shop.mg/api/callback/orange/cancel",
        notif_url="https://shop.mg/api/callback/orange/notify",
    )
    request = PaymentRequest(amount=2000, customer_phone="0321234567")

    response = run(provider, lambda: provider.initiate_payment(request))

    assert response.success
    assert response.status == TransactionStatus.PENDING
    assert response.payment_url.endswith("/pt-1")
    assert response.server_correlation_id == "pt-1"
    assert response.transaction_id.startswith("OM-")

    token_request = upstream.calls_to("/oauth/v3/token")[0]
    assert token_request.headers["Authorization"].startswith("Basic ")
    assert token_request.content == b"grant_type=client_credentials"

    payload = json.loads(upstream.calls_to("/orange-money-webpay")[0].content)
    assert payload["merchant_key"] == "om-merchant"
    assert payload["currency"] == "OUV"
    assert payload["amount"] == 2000
    assert payload["order_id"] == response.transaction_id
    assert payload["notif_url"] == "https://shop.mg/api/callback/orange/notify"
    assert payload["lang"] == "fr"


def test_orange_refused_creation_is_failed(orange_config):
    upstream = Upstream({
        "/oauth/v3/token": httpx.Response(200, json=TOKEN_BODY),
        "/orange-money-webpay": httpx.Response(200, json={"status": 412, "message": "Merchant inactive"}),
    })
    provider = OrangeMoneyProvider(orange_config, transport=upstream.transport)
    request = PaymentRequest(amount=2000, customer_phone="0321234567")

    response = run(provider, lambda: provider.initiate_payment(request))

    assert not response.success
    assert response.status == TransactionStatus.FAILED
    assert response.payment_url is None


def test_orange_transaction_status(orange_config):
    upstream = Upstream({
        "/oauth/v3/token": httpx.Response(200, json=TOKEN_BODY),
        "/orange-money-webpay/dev/v1/transactionstatus": httpx.Response(200, json={
            "status": "SUCCESS", "order_id": "OM-1", "txnid": "MP2101", "amount": "2000",
        }),
    })
    provider = OrangeMoneyProvider(orange_config, transport=upstream.transport)
    request = TransactionStatusRequest(network=Network.ORANGE_MONEY, transaction_id="OM-1", server_correlation_id="pt-1")

    details = run(provider, lambda: provider.get_transaction_status(request))

    status_request = upstream.calls_to("/orange-money-webpay")[0]
    assert status_request.method == "POST"
    assert json.loads(status_request.content) == {"order_id": "OM-1", "pay_token": "pt-1"}
    assert details.status == TransactionStatus.SUCCESS
    assert details.amount == 2000.0
    assert details.server_correlation_id == "MP2101"


def test_orange_production_url(orange_config):
    provider = OrangeMoneyProvider(orange_config.model_copy(update={"sandbox": False}))
    assert provider.base_url == "https://api.orange.com/orange-money-webpay/mg/v1"
    asyncio.run(provider.aclose())


# Airtel Money

def test_airtel_payment_strips_leading_zero_and_sends_country_headers(airtel_config):
    upstream = Upstream({
        "/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY),
        "/merchant/v1/payments/": httpx.Response(200, json={
            "data": {"transaction": {"id": "AIRTEL-1", "status": "TIP"}},
            "status": {"message": "In process", "response_code": "DP00800001006", "success": True},
        }),
    })
    provider = AirtelMoneyProvider(airtel_config, transport=upstream.transport)
    request = PaymentRequest(amount=3000, customer_phone="033 12 345 67", reference="AIRTEL-1")

    response = run(provider, lambda: provider.initiate_payment(request))

    assert response.success
    assert response.status == TransactionStatus.PENDING
    assert response.message == "In process"
    assert response.server_correlation_id == "AIRTEL-1"

    for sent in upstream.requests:
        assert sent.headers["X-Country"] == "MG"
        assert sent.headers["X-Currency"] == "MGA"

    token_payload = json.loads(upstream.calls_to("/auth/oauth2/token")[0].content)
    assert token_payload == {
        "client_id": "airtel-id",
        "client_secret": "airtel-secret",
        "grant_type": "client_credentials",
    }

    payload = json.loads(upstream.calls_to("/merchant/v1/payments/")[0].content)
    assert payload["subscriber"] == {"country": "MG", "currency": "MGA", "msisdn": "331234567"}
    assert payload["transaction"]["amount"] == 3000
    assert payload["transaction"]["id"] == "AIRTEL-1"
    assert "pin" not in payload


def test_airtel_transaction_status(airtel_config):
    upstream = Upstream({
        "/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY),
        "/standard/v1/payments/AIRTEL-1": httpx.Response(200, json={
            "data": {"transaction": {
                "id": "AIRTEL-1", "status": "TS", "amount": "3000", "airtel_money_id": "MP210603",
            }},
        }),
    })
    provider = AirtelMoneyProvider(airtel_config, transport=upstream.transport)
    request = TransactionStatusRequest(network=Network.AIRTEL_MONEY, transaction_id="AIRTEL-1")

    details = run(provider, lambda: provider.get_transaction_status(request))

    assert details.status == TransactionStatus.SUCCESS
    assert details.amount == 3000.0
    assert details.server_correlation_id == "MP210603"


def test_airtel_disbursement_carries_encrypted_pin(airtel_config, rsa_private_key):
    upstream = Upstream({
        "/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY),
        "/standard/v1/disbursements/": httpx.Response(200, json={
            "data": {"transaction": {"id": "AT-9", "status": "TS"}},
            "status": {"message": "Success"},
        }),
    })
    provider = AirtelMoneyProvider(airtel_config, transport=upstream.transport)

    response = run(provider, lambda: provider.disburse("0331234567", 5000))

    assert response.success
    assert response.status == TransactionStatus.SUCCESS
    assert response.transaction_id.startswith("AIRTEL-OUT-")

    payload = json.loads(upstream.calls_to("/standard/v1/disbursements/")[0].content)
    assert payload["payee"] == {"msisdn": "331234567"}
    assert payload["transaction"] == {"amount": 5000, "id": response.transaction_id}
    pin = rsa_private_key.decrypt(base64.b64decode(payload["pin"]), padding.PKCS1v15())
    assert pin == b"1234"


# Callback extraction

def test_mvola_callback_extraction():
    callback = MVolaProvider.parse_callback({
        "transactionReference": "MV-1",
        "serverCorrelationId": "corr-1",
        "status": "completed",
        "amount": "1000",
        "debitParty": [{"key": "msisdn", "value": "0341234567"}],
        "originalTransactionReference": "MVOLA-ABC",
    })

    assert callback.network == Network.MVOLA
    assert callback.transaction_id == "MV-1"
    assert callback.status == TransactionStatus.SUCCESS
    assert callback.amount == 1000.0
    assert callback.customer_phone == "0341234567"
    assert callback.reference == "MVOLA-ABC"


def test_orange_callback_extraction():
    callback = OrangeMoneyProvider.parse_callback({"order_id": "OM-1", "txnid": "MP1", "status": "FAILED", "amount": 500})

    assert callback.transaction_id == "OM-1"
    assert callback.server_correlation_id == "MP1"
    assert callback.status == TransactionStatus.FAILED
    assert callback.amount == 500.0


def test_airtel_callback_nested_and_flat():
    nested = AirtelMoneyProvider.parse_callback(
        {"transaction": {"id": "AT-1", "airtel_money_id": "MP1", "status": "TS", "amount": "700", "msisdn": "331234567"}}
    )
    flat = AirtelMoneyProvider.parse_callback({"id": "AT-2", "status": "TF"})

    assert nested.transaction_id == "AT-1"
    assert nested.status == TransactionStatus.SUCCESS
    assert nested.amount == 700.0
    assert nested.customer_phone == "331234567"
    assert flat.transaction_id == "AT-2"
    assert flat.status == TransactionStatus.FAILED


def test_callback_with_missing_fields_defaults():
    callback = MVolaProvider.parse_callback({})

    assert callback.transaction_id == ""
    assert callback.status == TransactionStatus.PENDING
    assert callback.amount == 0
    assert callback.currency == "MGA"


# Unexpected response shapes

@pytest.mark.parametrize("body", [["unexpected"], "unexpected", None, 42])
def test_non_object_response_is_internal_error(mvola_config, body):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(200, json=body),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = PaymentRequest(amount=1000, customer_phone="0341234567")

    with pytest.raises(InternalPaymentError) as exc_info:
        run(provider, lambda: provider.initiate_payment(request))

    assert exc_info.value.network == Network.MVOLA
    assert exc_info.value.code == "INTERNAL_ERROR"


def test_non_object_token_response_is_authentication_error(orange_config):
    upstream = Upstream({"/oauth/v3/token": httpx.Response(200, json=["tok-123"])})
    provider = OrangeMoneyProvider(orange_config, transport=upstream.transport)

    with pytest.raises(AuthenticationError) as exc_info:
        run(provider, provider.authenticate)

    assert exc_info.value.network == Network.ORANGE_MONEY


def test_mvola_status_with_malformed_parties(mvola_config):
    upstream = Upstream({
        "/token": httpx.Response(200, json=TOKEN_BODY),
        "/mvola/mm/transactions": httpx.Response(200, json={
            "transactionStatus": "completed",
            "debitParty": ["0341234567"],
            "creditParty": "0340000000",
        }),
    })
    provider = MVolaProvider(mvola_config, transport=upstream.transport)
    request = TransactionStatusRequest(network=Network.MVOLA, transaction_id="MVOLA-1")

    details = run(provider, lambda: provider.get_transaction_status(request))

    assert details.status == TransactionStatus.SUCCESS
    assert details.customer_phone is None
    assert details.merchant_phone is None


def test_airtel_payment_with_malformed_data_block(airtel_config):
    upstream = Upstream({
        "/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY),
        "/merchant/v1/payments/": httpx.Response(200, json={
            "data": ["unexpected"],
            "status": {"response_code": "DP00800001001", "message": "Success"},
        }),
    })
    provider = AirtelMoneyProvider(airtel_config, transport=upstream.transport)
    request = PaymentRequest(amount=3000, customer_phone="0331234567")

    response = run(provider, lambda: provider.initiate_payment(request))

    assert response.status == TransactionStatus.SUCCESS
    assert response.server_correlation_id is None


def test_airtel_status_with_non_object_transaction(airtel_config):
    upstream = Upstream({
        "/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY),
        "/standard/v1/payments/AIRTEL-1": httpx.Response(200, json={"data": {"transaction": "oops"}}),
    })
    provider = AirtelMoneyProvider(airtel_config, transport=upstream.transport)
    request = TransactionStatusRequest(network=Network.AIRTEL_MONEY, transaction_id="AIRTEL-1")

    details = run(provider, lambda: provider.get_transaction_status(request))

    assert details.transaction_id == "AIRTEL-1"
    assert details.status == TransactionStatus.PENDING


@pytest.mark.parametrize("public_key", ["", "not a pem key"])
def test_airtel_disbursement_with_unusable_public_key(airtel_config, public_key):
    upstream = Upstream({"/auth/oauth2/token": httpx.Response(200, json=TOKEN_BODY)})
    provider = AirtelMoneyProvider(
        airtel_config.model_copy(update={"public_key": public_key}), transport=upstream.transport
    )

    with pytest.raises(InternalPaymentError) as exc_info:
        run(provider, lambda: provider.disburse("0331234567", 5000))

    assert exc_info.value.network == Network.AIRTEL_MONEY
    assert exc_info.value.details
    assert upstream.requests == []
