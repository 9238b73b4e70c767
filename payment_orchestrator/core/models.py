"""
Request and result models exchanged with the payment orchestrator.

Requests are pydantic models so the HTTP layer can validate them directly;
the orchestrator itself trusts them.
"""
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

MIN_AMOUNT = Decimal("0.01")
# Largest value a Numeric(18, 2) column holds.
MAX_AMOUNT = Decimal("9999999999999999.99")


class CreditCard(BaseModel):
    """Card details submitted with a purchase or authorization."""

    card_number: str = Field(..., min_length=1, description="Card number (sandbox test numbers)")
    expiration_month: int = Field(..., ge=1, le=12, description="Expiration month (1-12)")
    expiration_year: int = Field(..., ge=2024, le=2050, description="Expiration year (4 digits)")
    cvv: str = Field(..., min_length=1, description="Card verification value")
    name_on_card: Optional[str] = Field(default=None, description="Name as printed on the card")

    @property
    def last_four_digits(self) -> str:
        return self.card_number[-4:]

    @property
    def expiration_date(self) -> str:
        """MMYYYY, as sent to the gateway."""
        return f"{self.expiration_month:02d}{self.expiration_year}"


class PaymentRequest(BaseModel):
    """Purchase or authorization request."""

    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    amount: Decimal = Field(
        ..., ge=MIN_AMOUNT, le=MAX_AMOUNT, max_digits=18, decimal_places=2, description="Amount in USD"
    )
    currency: str = Field(
        default="USD", pattern=r"^[A-Za-z]{3}$", description="Three-letter currency code"
    )
    credit_card: CreditCard = Field(..., description="Card details")
    description: Optional[str] = Field(default=None, max_length=500, description="Order description")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Normalize to upper case."""
        return v.upper()

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "CUST_12345",
                    "amount": "100.50",
                    "credit_card": {
                        "card_number": "4111111111111111",
                        "expiration_month": 12,
                        "expiration_year": 2030,
                        "cvv": "123",
                        "name_on_card": "John Doe",
                    },
                    "description": "Product purchase - Order #12345",
                }
            ]
        }
    }


class CaptureRequest(BaseModel):
    """Capture of a prior authorization; may be less than the authorized amount."""

    amount: Decimal = Field(
        ..., ge=MIN_AMOUNT, le=MAX_AMOUNT, max_digits=18, decimal_places=2, description="Amount to capture"
    )


class RefundRequest(BaseModel):
    """Full or partial refund of a settled transaction."""

    amount: Decimal = Field(
        ..., ge=MIN_AMOUNT, le=MAX_AMOUNT, max_digits=18, decimal_places=2, description="Amount to refund"
    )
    reason: Optional[str] = Field(default=None, max_length=500, description="Refund reason")

    model_config = {
        "json_schema_extra": {"examples": [{"amount": "50.25", "reason": "Customer requested refund"}]}
    }


@dataclass
class PaymentResult:
    """Uniform outcome of every orchestrated operation."""

    success: bool
    status: str
    transaction_id: str = ""
    order_number: str = ""
    amount: Decimal = Decimal("0.00")
    gateway_transaction_id: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def error(cls, message: str) -> "PaymentResult":
        """Failure raised before any gateway call (lookup or policy)."""
        return cls(success=False, status="Error", message=message)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
