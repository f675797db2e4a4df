"""Enumeration types for reservation and payment data models."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment lifecycle state of a reservation."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class TransactionStatus(str, Enum):
    """Status of one checkout attempt in the transaction log."""

    INITIATED = "INITIATED"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @property
    def is_active(self) -> bool:
        """True while the checkout attempt has not reached a terminal state."""
        return self in ACTIVE_TRANSACTION_STATUSES


class GatewayCheckoutStatus(str, Enum):
    """Checkout status as reported by SumUp."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str | None) -> "GatewayCheckoutStatus":
        """Read a provider status string, treating unknown values as PENDING."""
        if not value:
            return cls.PENDING
        try:
            return cls(value.upper())
        except ValueError:
            return cls.PENDING


ACTIVE_TRANSACTION_STATUSES = frozenset(
    {TransactionStatus.INITIATED, TransactionStatus.PENDING}
)

# Allowed reservation payment status transitions
PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}


def is_valid_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Check whether a reservation may move from current to target status."""
    return target in PAYMENT_STATUS_TRANSITIONS[current]
