import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from paidmada.app import create_app
from paidmada.config import Settings
from paidmada.core.payments.model.gatewayconfig import (
    AirtelMoneyConfig,
    MVolaConfig,
    OrangeMoneyConfig,
)


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_key):
    return rsa_private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def mvola_config():
    return MVolaConfig(
        consumer_key="mvola-key",
        consumer_secret="mvola-secret",
        merchant_number="034 00 000 00",
        partner_name="Test Shop",
    )


@pytest.fixture
def orange_config():
    return OrangeMoneyConfig(client_id="om-id", client_secret="om-secret", merchant_key="om-merchant")


@pytest.fixture
def airtel_config(rsa_public_pem):
    return AirtelMoneyConfig(
        client_id="airtel-id",
        client_secret="airtel-secret",
        public_key=rsa_public_pem,
        pin="1234",
    )


def make_settings(**overrides) -> Settings:
    values = dict(
        MOCK_MODE=True,
        MOCK_SUCCESS_RATE=100,
        MOCK_RESPONSE_DELAY=0,
        MOCK_SIMULATE_PENDING=False,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def client():
    with TestClient(create_app(make_settings())) as test_client:
        yield test_client


@pytest.fixture
def settings_factory():
    return make_settings
