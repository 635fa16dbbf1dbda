from typing import Any, Optional

from paidmada.core.payments.model.paynetwork import Network


class PaymentError(Exception):
    """Base error raised by the gateway and its network adapters."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        network: Optional[Network] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.network = network
        self.details = details

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "provider": self.network.value if self.network else None,
            "details": self.details,
        }


class NetworkDetectionError(PaymentError):
    code = "PROVIDER_DETECTION_FAILED"

    def __init__(self, message: str = "Unable to detect the network from the phone number", **kwargs):
        super().__init__(message, **kwargs)


class UnknownPhoneNumberError(NetworkDetectionError):
    code = "UNKNOWN_PHONE_NUMBER"

    def __init__(self, message: str = "Phone number not recognized", **kwargs):
        super().__init__(message, **kwargs)


class InvalidPhoneError(PaymentError):
    code = "INVALID_PHONE"

    def __init__(self, reason: Optional[str] = None, **kwargs):
        self.reason = reason
        super().__init__(reason or "Invalid phone number", **kwargs)


class NetworkNotConfiguredError(PaymentError):
    code = "PROVIDER_NOT_CONFIGURED"

    def __init__(self, network: Network, **kwargs):
        super().__init__(f"Provider {network.value} is not configured", network=network, **kwargs)


class AuthenticationError(PaymentError):
    code = "AUTH_ERROR"


class UpstreamValidationError(PaymentError):
    code = "VALIDATION_ERROR"


class UpstreamNotFoundError(PaymentError):
    code = "NOT_FOUND"


class UpstreamServerError(PaymentError):
    code = "SERVER_ERROR"


class InternalPaymentError(PaymentError):
    code = "INTERNAL_ERROR"


class UnknownNetworkError(PaymentError):
    code = "UNKNOWN_PROVIDER"

    def __init__(self, network: Any = None, **kwargs):
        super().__init__(f"Unknown provider: {network}", details={"provider": network}, **kwargs)
