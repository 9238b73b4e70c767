"""Exceptions raised by the payment core."""
from typing import Optional

from payment_orchestrator.database.store import RecordNotFoundError


class PaymentError(Exception):
    """Base exception for payment processing errors."""

    pass


class PaymentRequestError(PaymentError):
    """Raised when the request object handed to the orchestrator is absent."""

    pass


class IllegalTransitionError(PaymentError):
    """Raised when an order event is not allowed from the current status."""

    def __init__(self, message: str, current: Optional[str] = None, event: Optional[str] = None):
        super().__init__(message)
        self.current = current
        self.event = event


__all__ = [
    "IllegalTransitionError",
    "PaymentError",
    "PaymentRequestError",
    "RecordNotFoundError",
]
