"""
Pydantic schemas for API responses.

Request bodies (PaymentRequest, CaptureRequest, RefundRequest) live in
``payment_orchestrator.core.models`` so the orchestrator and the API
validate against the same models.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from payment_orchestrator.core.models import PaymentResult
from payment_orchestrator.database.models import Order, Transaction

CENT = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Amount as an exact two-place decimal string."""
    return str(amount.quantize(CENT))


class PaymentResponse(BaseModel):
    """Outcome of a purchase, authorize, capture, void or refund."""

    success: bool = Field(..., description="Whether the operation succeeded")
    transaction_id: str = Field(default="", description="Ledger transaction id (TXN_...)")
    gateway_transaction_id: Optional[str] = Field(
        default=None, description="Authorize.Net transaction id"
    )
    order_number: str = Field(default="", description="Order number (ORD_...)")
    amount: Decimal = Field(default=Decimal("0.00"), description="Operation amount")
    status: str = Field(..., description="Captured, Authorized, Voided, Refunded, Failed or Error")
    message: Optional[str] = Field(default=None, description="Result or error message")
    error_code: Optional[str] = Field(default=None, description="Gateway response code on failure")

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return format_amount(amount)

    @classmethod
    def from_result(cls, result: PaymentResult) -> "PaymentResponse":
        return cls(**result.to_dict())

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "transaction_id": "TXN_20241201123456_0f8fad5bd9cb469fa16570867728950e",
                    "gateway_transaction_id": "60123456789",
                    "order_number": "ORD_20241201123456_7890",
                    "amount": "100.50",
                    "status": "Captured",
                    "message": "Transaction completed successfully",
                    "error_code": None,
                }
            ]
        }
    }


class TransactionResponse(BaseModel):
    """Ledger entry as exposed by the orders API."""

    id: UUID = Field(..., description="Transaction primary key")
    transaction_id: str = Field(..., description="Ledger transaction id (TXN_...)")
    type: str = Field(..., description="Purchase, Authorize, Capture, Void or Refund")
    amount: Decimal = Field(..., description="Transaction amount")
    status: str = Field(..., description="Pending, Success, Failed or Cancelled")
    gateway_transaction_id: Optional[str] = Field(
        default=None, description="Authorize.Net transaction id"
    )
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return format_amount(amount)

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            transaction_id=transaction.transaction_id,
            type=transaction.type.value,
            amount=transaction.amount,
            status=transaction.status.value,
            gateway_transaction_id=transaction.gateway_transaction_id,
            created_at=transaction.created_at,
        )


class OrderResponse(BaseModel):
    """Order with its transaction history (oldest first)."""

    id: UUID = Field(..., description="Order primary key")
    order_number: str = Field(..., description="Order number (ORD_...)")
    customer_id: str = Field(..., description="Customer identifier")
    amount: Decimal = Field(..., description="Order amount")
    currency: str = Field(..., description="Currency code")
    status: str = Field(..., description="Current order status")
    description: Optional[str] = Field(default=None, description="Order description")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    transactions: List[TransactionResponse] = Field(default_factory=list)

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return format_amount(amount)

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            amount=order.amount,
            currency=order.currency,
            status=order.status.value,
            description=order.description,
            created_at=order.created_at,
            transactions=[TransactionResponse.from_transaction(t) for t in order.transactions],
        )


class RefundCheckResponse(BaseModel):
    """Refund-versus-void advice for a stored transaction."""

    transaction_id: str
    transaction_type: str
    transaction_status: str
    gateway_transaction_id: Optional[str] = None
    created_at: datetime
    time_since_creation_minutes: float
    is_old_enough_for_refund: bool
    can_be_refunded: bool
    should_use_void: bool
    recommended_action: str


class ConfigTestResponse(BaseModel):
    """Configuration status with credentials masked."""

    authorize_net_configured: bool = Field(..., description="Real credentials present")
    api_login_id_masked: str = Field(..., description="Masked API login id")
    transaction_key_masked: str = Field(..., description="Masked transaction key")
    environment: str = Field(..., description="Sandbox or Production")
    database_connection_configured: bool = Field(..., description="Database URL present")


class DatabaseTestResponse(BaseModel):
    """Database connectivity and row counts."""

    can_connect: bool
    order_count: int = 0
    transaction_count: int = 0
    message: str


class HealthCheckResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(..., description="Overall health status")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual checks")
    message: Optional[str] = Field(default=None, description="Status message")
