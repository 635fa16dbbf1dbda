import base64
import hashlib
import hmac
import logging
import re
from typing import Any, Dict, Iterable, Mapping

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding

logger = logging.getLogger(__name__)

SENSITIVE_PHONE_FIELDS = ("customer_phone", "merchant_phone", "customerPhone", "merchantPhone", "msisdn")
_UNSAFE_CHARS = re.compile(r'[<>"\'&]')


def to_base64(value: str) -> str:
    return base64.b64encode(value.encode('utf-8')).decode('ascii')


def create_hmac_signature(data: str, secret: str) -> str:
    return hmac.new(secret.encode('utf-8'), data.encode('utf-8'), hashlib.sha256).hexdigest()


def verify_hmac_signature(data: str, signature: str, secret: str) -> bool:
    expected = create_hmac_signature(data, secret)
    return timing_safe_compare(signature, expected)


def timing_safe_compare(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))


def encrypt_with_public_key(data: str, public_key: str) -> str:
    """RSA PKCS#1 v1.5 encryption with a PEM public key, base64 encoded."""
    key = serialization.load_pem_public_key(public_key.encode('utf-8'))
    encrypted = key.encrypt(data.encode('utf-8'), padding.PKCS1v15())
    return base64.b64encode(encrypted).decode('ascii')


def mask_sensitive_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of a record safe for logs: phone numbers keep their first 6 characters."""
    masked = {}
    for key, value in data.items():
        if key in SENSITIVE_PHONE_FIELDS and isinstance(value, str) and value:
            masked[key] = value[:6] + '****'
        elif key in ("raw_payload", "raw_response", "rawPayload", "rawResponse"):
            continue
        else:
            masked[key] = value
    return masked


def sanitize_callback_data(data: Mapping[str, Any], allowed_keys: Iterable[str]) -> Dict[str, str]:
    """Keep whitelisted keys only, as short strings without HTML-significant characters."""
    sanitized = {}
    for key in allowed_keys:
        value = data.get(key)
        if value is None:
            continue
        sanitized[key] = _UNSAFE_CHARS.sub('', str(value))[:100]
    return sanitized
