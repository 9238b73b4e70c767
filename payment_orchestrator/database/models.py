"""SQLAlchemy database models for orders, payment methods and transactions."""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class OrderStatus(str, Enum):
    """Order lifecycle states. Transitions live in core.state_machine."""

    PENDING = "Pending"
    AUTHORIZED = "Authorized"
    CAPTURED = "Captured"
    VOIDED = "Voided"
    REFUNDED = "Refunded"
    FAILED = "Failed"


class TransactionType(str, Enum):
    """Gateway operation recorded by a ledger entry."""

    PURCHASE = "Purchase"
    AUTHORIZE = "Authorize"
    CAPTURE = "Capture"
    VOID = "Void"
    REFUND = "Refund"


class TransactionStatus(str, Enum):
    """Outcome of a ledger entry."""

    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"
    CANCELLED = "Cancelled"  # reserved, nothing assigns it yet


def _enum_column(enum_cls: type[Enum], name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Order(Base):
    """
    Orders table.

    One row per payment request that initiated a purchase or authorization.
    Status is only ever changed by the payment orchestrator.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    customer_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    status: Mapped[OrderStatus] = mapped_column(
        _enum_column(OrderStatus, "order_status"), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    transactions: Mapped[List["Transaction"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Transaction.created_at",
    )
    payment_method: Mapped[Optional["PaymentMethod"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("amount >= 0.01", name="positive_order_amount"),
        CheckConstraint("length(currency) = 3", name="valid_currency"),
        Index("idx_orders_created_desc", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation of Order."""
        return (
            f"<Order(id={self.id}, number={self.order_number}, "
            f"amount={self.amount}, status={self.status})>"
        )


class PaymentMethod(Base):
    """
    Payment methods table.

    Card data is reduced to the last four digits; the full number and the
    CVV are never stored.
    """

    __tablename__ = "payment_methods"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    last_four_digits: Mapped[str] = mapped_column(String(4), nullable=False)
    card_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    expiration_month: Mapped[int] = mapped_column(Integer, nullable=False)
    expiration_year: Mapped[int] = mapped_column(Integer, nullable=False)
    name_on_card: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    billing_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped[Order] = relationship(back_populates="payment_method")

    def __repr__(self) -> str:
        """String representation of PaymentMethod."""
        return f"<PaymentMethod(order_id={self.order_id}, last_four={self.last_four_digits})>"


class Transaction(Base):
    """
    Transactions ledger table.

    One row per orchestrated gateway operation. Type and order never change
    after creation; status moves once from Pending to Success or Failed.
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        _enum_column(TransactionType, "transaction_type"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        _enum_column(TransactionStatus, "transaction_status"), nullable=False, index=True
    )
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    response_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    response_message: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    order: Mapped[Order] = relationship(back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_order_created", "order_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation of Transaction."""
        return (
            f"<Transaction(id={self.transaction_id}, type={self.type}, "
            f"amount={self.amount}, status={self.status})>"
        )
