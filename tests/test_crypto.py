import base64
import re

from cryptography.hazmat.primitives.asymmetric import padding

from paidmada.utilities.crypto import (
    create_hmac_signature,
    encrypt_with_public_key,
    mask_sensitive_data,
    sanitize_callback_data,
    timing_safe_compare,
    to_base64,
    verify_hmac_signature,
)
from paidmada.utilities.uniqueidgenerator import UniqueIdGenerator


def test_to_base64():
    assert to_base64("key:secret") == "a2V5OnNlY3JldA=="


def test_hmac_signature_roundtrip():
    signature = create_hmac_signature('{"status":"completed"}', "s3cret")
    assert re.fullmatch(r"[0-9a-f]{64}", signature)
    assert verify_hmac_signature('{"status":"completed"}', signature, "s3cret")
    assert not verify_hmac_signature('{"status":"failed"}', signature, "s3cret")
    assert not verify_hmac_signature('{"status":"completed"}', signature, "other")


def test_timing_safe_compare():
    assert timing_safe_compare("abc", "abc")
    assert not timing_safe_compare("abc", "abd")
    assert not timing_safe_compare("abc", "abcd")


def test_encrypt_with_public_key_decrypts_with_private_key(rsa_private_key, rsa_public_pem):
    encrypted = encrypt_with_public_key("1234", rsa_public_pem)
    decrypted = rsa_private_key.decrypt(base64.b64decode(encrypted), padding.PKCS1v15())
    assert decrypted == b"1234"


def test_mask_sensitive_data():
    masked = mask_sensitive_data({
        "customerPhone": "0341234567",
        "msisdn": "331234567",
        "amount": 1000,
        "rawPayload": {"secret": True},
    })
    assert masked == {"customerPhone": "034123****", "msisdn": "331234****", "amount": 1000}


def test_sanitize_callback_data():
    sanitized = sanitize_callback_data(
        {"order_id": "<script>alert('x')</script>", "status": "SUCCESS", "amount": 1500, "evil": "1"},
        ["order_id", "status", "txnid", "amount"],
    )
    assert sanitized == {"order_id": "scriptalert(x)/script", "status": "SUCCESS", "amount": "1500"}


def test_sanitize_callback_data_truncates():
    sanitized = sanitize_callback_data({"order_id": "a" * 150}, ["order_id"])
    assert len(sanitized["order_id"]) == 100


def test_transaction_reference_format():
    reference = UniqueIdGenerator.generate_transaction_reference("OM")
    assert re.fullmatch(r"OM-[0-9A-Z]+-[0-9A-F]{8}", reference)
    assert reference != UniqueIdGenerator.generate_transaction_reference("OM")
