import re
import logging

from paidmada.core.payments.model.paynetwork import COUNTRY_CODE

logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    """
    Normalize a Malagasy phone number to local format (0XXXXXXXXX).

    Rules:
    - Remove every non-digit character (spaces, dashes, "+", ...)
    - If 12 digits starting with 261: replace 261 with a single 0
      Example: +261341234567 -> 0341234567
    - If 9 digits without a leading 0: prepend 0
      Example: 341234567 -> 0341234567
    - Anything else is returned as the bare digits

    Args:
        phone: Phone number string (may have spaces, dashes, etc.)

    Returns:
        Digits-only phone number, in local format when recognizable
    """
    cleaned = re.sub(r'\D', '', phone or '')

    if cleaned.startswith(COUNTRY_CODE) and len(cleaned) == 12:
        cleaned = '0' + cleaned[3:]

    if len(cleaned) == 9 and not cleaned.startswith('0'):
        cleaned = '0' + cleaned

    return cleaned


def format_phone_display(phone: str) -> str:
    """Format a number for display, e.g. 0341234567 -> 034 12 345 67."""
    normalized = normalize_phone(phone)
    if len(normalized) != 10:
        return phone

    return f"{normalized[:3]} {normalized[3:5]} {normalized[5:8]} {normalized[8:]}"


def to_international_format(phone: str) -> str:
    """Convert to +261 international format, e.g. 0341234567 -> +261341234567."""
    normalized = normalize_phone(phone)
    if normalized.startswith('0'):
        return f"+{COUNTRY_CODE}{normalized[1:]}"
    return f"+{COUNTRY_CODE}{normalized}"


def strip_leading_zero(phone: str) -> str:
    """Local number without its leading 0, e.g. 0331234567 -> 331234567."""
    normalized = normalize_phone(phone)
    return normalized[1:] if normalized.startswith('0') else normalized


def mask_phone(phone: str) -> str:
    if not phone:
        return phone
    return phone[:6] + '****'
