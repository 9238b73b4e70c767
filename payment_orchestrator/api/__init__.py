"""FastAPI application and routes."""
from .main import app
from .schemas import OrderResponse, PaymentResponse, TransactionResponse

__all__ = [
    "app",
    "OrderResponse",
    "PaymentResponse",
    "TransactionResponse",
]
