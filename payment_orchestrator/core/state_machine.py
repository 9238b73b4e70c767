"""
Order status transitions.

State machine:
PENDING → AUTHORIZED → CAPTURED → REFUNDED (→ REFUNDED for partial refunds)
   │          │            │
   │          └──→ VOIDED ←─┘
   ├──→ CAPTURED (purchase)
   └──→ FAILED (declined first operation)

Only the first operation on an order can fail it; a declined capture, void
or refund leaves the order where it was.
"""
from enum import Enum
from typing import Dict, Tuple

from payment_orchestrator.database.models import OrderStatus, TransactionStatus

from .exceptions import IllegalTransitionError


class OrderEvent(str, Enum):
    """Gateway outcomes that move an order."""

    PURCHASE_APPROVED = "purchase_approved"
    AUTHORIZATION_APPROVED = "authorization_approved"
    INITIAL_PAYMENT_DECLINED = "initial_payment_declined"
    CAPTURE_APPROVED = "capture_approved"
    VOID_APPROVED = "void_approved"
    REFUND_APPROVED = "refund_approved"


ORDER_TRANSITIONS: Dict[Tuple[OrderStatus, OrderEvent], OrderStatus] = {
    (OrderStatus.PENDING, OrderEvent.PURCHASE_APPROVED): OrderStatus.CAPTURED,
    (OrderStatus.PENDING, OrderEvent.AUTHORIZATION_APPROVED): OrderStatus.AUTHORIZED,
    (OrderStatus.PENDING, OrderEvent.INITIAL_PAYMENT_DECLINED): OrderStatus.FAILED,
    (OrderStatus.AUTHORIZED, OrderEvent.CAPTURE_APPROVED): OrderStatus.CAPTURED,
    (OrderStatus.AUTHORIZED, OrderEvent.VOID_APPROVED): OrderStatus.VOIDED,
    (OrderStatus.CAPTURED, OrderEvent.VOID_APPROVED): OrderStatus.VOIDED,
    (OrderStatus.CAPTURED, OrderEvent.REFUND_APPROVED): OrderStatus.REFUNDED,
    (OrderStatus.REFUNDED, OrderEvent.REFUND_APPROVED): OrderStatus.REFUNDED,
}

TRANSACTION_TRANSITIONS: Dict[TransactionStatus, Tuple[TransactionStatus, ...]] = {
    TransactionStatus.PENDING: (TransactionStatus.SUCCESS, TransactionStatus.FAILED),
    TransactionStatus.SUCCESS: (),
    TransactionStatus.FAILED: (),
    TransactionStatus.CANCELLED: (),
}


def can_transition(current: OrderStatus, event: OrderEvent) -> bool:
    return (current, event) in ORDER_TRANSITIONS


def next_order_status(current: OrderStatus, event: OrderEvent) -> OrderStatus:
    """
    Resolve the status an order moves to when ``event`` happens.

    Raises:
        IllegalTransitionError: If the event is not allowed from ``current``
    """
    try:
        return ORDER_TRANSITIONS[(current, event)]
    except KeyError:
        raise IllegalTransitionError(
            f"Cannot apply {event.value} to order in status {current.value}",
            current=current.value,
            event=event.value,
        ) from None


def check_transaction_transition(current: TransactionStatus, new: TransactionStatus) -> None:
    """Ledger entries settle exactly once, from Pending."""
    if new not in TRANSACTION_TRANSITIONS[current]:
        raise IllegalTransitionError(
            f"Cannot move transaction from {current.value} to {new.value}",
            current=current.value,
            event=new.value,
        )
