from enum import Enum


class TransactionStatus(str, Enum):
    # Only non-terminal state
    PENDING = "pending"

    # Final states
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TransactionStatus.SUCCESS,
    TransactionStatus.FAILED,
    TransactionStatus.EXPIRED,
    TransactionStatus.CANCELLED,
})


class TransactionType(str, Enum):
    PAYMENT = "payment"            # Customer to merchant
    TRANSFER = "transfer"          # P2P
    DISBURSEMENT = "disbursement"  # Merchant to customer
