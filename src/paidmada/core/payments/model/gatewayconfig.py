from typing import Optional
from pydantic import BaseModel, Field


class MVolaConfig(BaseModel):
    consumer_key: str
    consumer_secret: str
    merchant_number: str
    partner_name: str
    sandbox: bool = True


class OrangeMoneyConfig(BaseModel):
    client_id: str
    client_secret: str
    merchant_key: str
    sandbox: bool = True


class AirtelMoneyConfig(BaseModel):
    client_id: str
    client_secret: str
    public_key: str
    # Only sent (encrypted) on disbursements
    pin: str = ""
    sandbox: bool = True


class MockModeConfig(BaseModel):
    enabled: bool = True
    success_rate: int = Field(90, ge=0, le=100)
    # Seconds; None means a random delay between 0.5 and 1.5 seconds
    response_delay: Optional[float] = Field(None, ge=0)
    simulate_pending: bool = True
    # Seconds before a pending simulated transaction settles
    pending_delay: float = Field(3.0, ge=0)


class GatewayConfig(BaseModel):
    mvola: Optional[MVolaConfig] = None
    orange_money: Optional[OrangeMoneyConfig] = None
    airtel_money: Optional[AirtelMoneyConfig] = None
    callback_base_url: str = "http://localhost:3000/api/callback"
    sandbox: bool = True
    mock_mode: Optional[MockModeConfig] = None
    request_timeout: float = 30.0
