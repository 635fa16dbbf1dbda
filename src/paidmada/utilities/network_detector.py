import logging
from dataclasses import dataclass
from typing import Optional

from paidmada.core.payments.model.paynetwork import Network, NETWORK_PREFIXES, MOBILE_MARKER
from paidmada.utilities.phone_utils import normalize_phone

logger = logging.getLogger(__name__)

# Rejection reasons
WRONG_LENGTH = "wrong_length"
WRONG_LEADING_DIGITS = "wrong_leading_digits"
PREFIX_NOT_RECOGNIZED = "prefix_not_recognized"


@dataclass(frozen=True)
class PhoneValidation:
    is_valid: bool
    network: Optional[Network] = None
    normalized_number: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class NetworkDetector:
    """
    Detects which mobile money network owns a Malagasy phone number.
    Classification is pure: no I/O and no mutable state.
    """

    @staticmethod
    def classify(phone: str) -> PhoneValidation:
        """
        Validate a phone number and detect its network.

        Args:
            phone: Raw phone number (spaces, dashes, +261 accepted)

        Returns:
            PhoneValidation; invalid results carry a reason and message

        Example:
            - 034x, 038x -> MVOLA
            - 032x, 037x -> ORANGE_MONEY
            - 033x -> AIRTEL_MONEY
        """
        normalized = normalize_phone(phone)

        if len(normalized) != 10:
            return PhoneValidation(
                is_valid=False,
                reason=WRONG_LENGTH,
                error="Phone number must contain 10 digits",
            )

        if not normalized.startswith(MOBILE_MARKER):
            return PhoneValidation(
                is_valid=False,
                reason=WRONG_LEADING_DIGITS,
                error=f"Phone number must start with {MOBILE_MARKER}x",
            )

        prefix = normalized[:3]
        for network, prefixes in NETWORK_PREFIXES.items():
            if prefix in prefixes:
                return PhoneValidation(is_valid=True, network=network, normalized_number=normalized)

        logger.debug(f"[NETWORK_DETECTOR] Unknown network prefix: {prefix}")
        return PhoneValidation(
            is_valid=False,
            normalized_number=normalized,
            reason=PREFIX_NOT_RECOGNIZED,
            error=f"Prefix {prefix} not recognized",
        )

    @staticmethod
    def detect_network(phone: str) -> Optional[Network]:
        return NetworkDetector.classify(phone).network

    @staticmethod
    def is_phone_for_network(phone: str, network: Network) -> bool:
        validation = NetworkDetector.classify(phone)
        return validation.is_valid and validation.network == network

    @staticmethod
    def get_all_supported_prefixes() -> dict:
        return dict(NETWORK_PREFIXES)
