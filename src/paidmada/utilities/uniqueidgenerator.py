import secrets
import time
import uuid


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if number == 0:
        return "0"
    encoded = ""
    while number:
        number, remainder = divmod(number, 36)
        encoded = digits[remainder] + encoded
    return encoded


class UniqueIdGenerator:
    @staticmethod
    def generate_transaction_reference(prefix: str = "TXN") -> str:
        """
        Generate a transaction reference with format: {prefix}-{base36 ms timestamp}-{8 hex chars}
        """
        timestamp = _base36(int(time.time() * 1000))
        random_part = secrets.token_hex(4).upper()
        return f"{prefix}-{timestamp}-{random_part}"

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())
