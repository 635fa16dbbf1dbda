from typing import Dict, Optional

from pydantic import Field, field_validator

from paidmada.core.payments.dto.apimodel import ApiModel
from paidmada.core.payments.model.paynetwork import Network, DEFAULT_CURRENCY
from paidmada.utilities.phone_utils import normalize_phone

MIN_AMOUNT = 100
MAX_METADATA_ENTRIES = 10
MAX_METADATA_KEY_LENGTH = 64
MAX_METADATA_VALUE_LENGTH = 256


def validate_metadata(value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if value is None:
        return value
    if len(value) > MAX_METADATA_ENTRIES:
        raise ValueError(f"At most {MAX_METADATA_ENTRIES} metadata entries are allowed")
    for key, item in value.items():
        if len(key) > MAX_METADATA_KEY_LENGTH:
            raise ValueError(f"Metadata key too long (max {MAX_METADATA_KEY_LENGTH}): {key[:16]}...")
        if len(item) > MAX_METADATA_VALUE_LENGTH:
            raise ValueError(f"Metadata value too long (max {MAX_METADATA_VALUE_LENGTH}) for key: {key}")
    return value


def validate_malagasy_phone(value: str) -> str:
    normalized = normalize_phone(value)
    if len(normalized) != 10 or not normalized.startswith("03"):
        raise ValueError("Invalid Malagasy phone number (format: 03X XX XXX XX)")
    return "".join(ch for ch in value if ch.isdigit())


class PaymentRequest(ApiModel):
    network: Optional[Network] = Field(None, alias="provider")
    amount: int = Field(..., ge=MIN_AMOUNT)
    currency: str = DEFAULT_CURRENCY
    customer_phone: str
    description: Optional[str] = Field(None, max_length=100)
    reference: Optional[str] = Field(None, max_length=50)
    metadata: Optional[Dict[str, str]] = None
    callback_url: Optional[str] = None

    @field_validator("metadata")
    @classmethod
    def check_metadata(cls, value):
        return validate_metadata(value)


class PaymentRequestSchema(PaymentRequest):
    """Inbound /pay body: the phone must look like a Malagasy mobile number."""

    @field_validator("customer_phone")
    @classmethod
    def check_phone(cls, value):
        return validate_malagasy_phone(value)


class SmartPayRequest(ApiModel):
    phone: str
    amount: int = Field(..., ge=MIN_AMOUNT)
    description: Optional[str] = Field(None, max_length=100)
    reference: Optional[str] = Field(None, max_length=50)
    metadata: Optional[Dict[str, str]] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value):
        return validate_malagasy_phone(value)

    @field_validator("metadata")
    @classmethod
    def check_metadata(cls, value):
        return validate_metadata(value)


class TransactionStatusRequest(ApiModel):
    network: Network = Field(..., alias="provider")
    transaction_id: str = Field(..., min_length=1)
    server_correlation_id: Optional[str] = None
