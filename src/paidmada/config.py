from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from paidmada.core.payments.model.gatewayconfig import (
    AirtelMoneyConfig,
    GatewayConfig,
    MockModeConfig,
    MVolaConfig,
    OrangeMoneyConfig,
)
from paidmada.core.payments.model.paynetwork import Network


def _split(value: Optional[str]) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    SERVICE_NAME: str = "PaidMada"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    PORT: int = 3000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    # Unset means sandbox everywhere except production
    SANDBOX: Optional[bool] = None
    CALLBACK_BASE_URL: str = "http://localhost:3000/api/callback"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Simulation
    MOCK_MODE: bool = False
    MOCK_SUCCESS_RATE: int = 90
    MOCK_RESPONSE_DELAY: Optional[float] = None
    MOCK_SIMULATE_PENDING: bool = True
    MOCK_PENDING_DELAY: float = 3.0

    # MVola
    MVOLA_CONSUMER_KEY: Optional[str] = None
    MVOLA_CONSUMER_SECRET: str = ""
    MVOLA_MERCHANT_NUMBER: str = ""
    MVOLA_PARTNER_NAME: str = "PaidMada"

    # Orange Money
    ORANGE_CLIENT_ID: Optional[str] = None
    ORANGE_CLIENT_SECRET: str = ""
    ORANGE_MERCHANT_KEY: str = ""

    # Airtel Money
    AIRTEL_CLIENT_ID: Optional[str] = None
    AIRTEL_CLIENT_SECRET: str = ""
    AIRTEL_PUBLIC_KEY: str = ""
    AIRTEL_PIN: str = ""

    # Security
    API_SECRET_KEY: Optional[str] = None
    ALLOWED_ORIGINS: str = ""  # comma separated, production only
    CALLBACK_ALLOWED_ORIGIN: str = "*"
    MVOLA_CALLBACK_SECRET: Optional[str] = None
    ORANGE_CALLBACK_SECRET: Optional[str] = None
    AIRTEL_CALLBACK_SECRET: Optional[str] = None
    MVOLA_ALLOWED_IPS: str = ""  # comma separated, empty allows all
    ORANGE_ALLOWED_IPS: str = ""
    AIRTEL_ALLOWED_IPS: str = ""

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_sandbox(self) -> bool:
        return self.SANDBOX if self.SANDBOX is not None else not self.is_production

    @property
    def allowed_origins(self) -> List[str]:
        return _split(self.ALLOWED_ORIGINS)

    def callback_secret(self, network: Network) -> Optional[str]:
        return {
            Network.MVOLA: self.MVOLA_CALLBACK_SECRET,
            Network.ORANGE_MONEY: self.ORANGE_CALLBACK_SECRET,
            Network.AIRTEL_MONEY: self.AIRTEL_CALLBACK_SECRET,
        }[network]

    def callback_allowed_ips(self, network: Network) -> List[str]:
        return _split({
            Network.MVOLA: self.MVOLA_ALLOWED_IPS,
            Network.ORANGE_MONEY: self.ORANGE_ALLOWED_IPS,
            Network.AIRTEL_MONEY: self.AIRTEL_ALLOWED_IPS,
        }[network])


def build_gateway_config(settings: Settings) -> GatewayConfig:
    """Credential bundles are only built for networks whose key is set."""
    sandbox = settings.is_sandbox

    mvola = None
    if settings.MVOLA_CONSUMER_KEY:
        mvola = MVolaConfig(
            consumer_key=settings.MVOLA_CONSUMER_KEY,
            consumer_secret=settings.MVOLA_CONSUMER_SECRET,
            merchant_number=settings.MVOLA_MERCHANT_NUMBER,
            partner_name=settings.MVOLA_PARTNER_NAME,
            sandbox=sandbox,
        )

    orange_money = None
    if settings.ORANGE_CLIENT_ID:
        orange_money = OrangeMoneyConfig(
            client_id=settings.ORANGE_CLIENT_ID,
            client_secret=settings.ORANGE_CLIENT_SECRET,
            merchant_key=settings.ORANGE_MERCHANT_KEY,
            sandbox=sandbox,
        )

    airtel_money = None
    if settings.AIRTEL_CLIENT_ID:
        airtel_money = AirtelMoneyConfig(
            client_id=settings.AIRTEL_CLIENT_ID,
            client_secret=settings.AIRTEL_CLIENT_SECRET,
            public_key=settings.AIRTEL_PUBLIC_KEY,
            pin=settings.AIRTEL_PIN,
            sandbox=sandbox,
        )

    mock_mode = None
    if settings.MOCK_MODE:
        mock_mode = MockModeConfig(
            enabled=True,
            success_rate=settings.MOCK_SUCCESS_RATE,
            response_delay=settings.MOCK_RESPONSE_DELAY,
            simulate_pending=settings.MOCK_SIMULATE_PENDING,
            pending_delay=settings.MOCK_PENDING_DELAY,
        )

    return GatewayConfig(
        mvola=mvola,
        orange_money=orange_money,
        airtel_money=airtel_money,
        callback_base_url=settings.CALLBACK_BASE_URL,
        sandbox=sandbox,
        mock_mode=mock_mode,
        request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


settings = Settings()
