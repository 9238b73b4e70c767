"""Database package for the payment orchestrator."""
from .connection import get_db, get_session_factory, init_db, session_scope
from .models import (
    Base,
    Order,
    OrderStatus,
    PaymentMethod,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from .store import RecordNotFoundError, RecordStore

__all__ = [
    "Base",
    "Order",
    "OrderStatus",
    "PaymentMethod",
    "RecordNotFoundError",
    "RecordStore",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "get_db",
    "get_session_factory",
    "init_db",
    "session_scope",
]
