"""
Record store over an async SQLAlchemy session.

All persistence for orders, payment methods and transactions goes through
this class. Writes are flushed immediately; ``transaction()`` marks the
commit/rollback boundary for a group of writes.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import structlog
from sqlalchemy import desc, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import Order, PaymentMethod, Transaction

logger = structlog.get_logger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when a keyed order or transaction does not exist."""

    def __init__(self, entity: str, key: object):
        super().__init__(f"{entity} with ID {key} not found")
        self.entity = entity
        self.key = key


class RecordStore:
    """Create/read/update access to the payment records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Commit everything written inside the block, or roll it back.

        Yields:
            AsyncSession: The underlying session
        """
        try:
            yield self.session
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.warning("store_transaction_rolled_back")
            raise

    # Orders

    async def create_order(
        self, order: Order, payment_method: Optional[PaymentMethod] = None
    ) -> Order:
        """Persist an order, optionally with its payment method in the same flush."""
        if payment_method is not None:
            order.payment_method = payment_method
        self.session.add(order)
        await self.session.flush()
        return order

    async def find_order_by_id(
        self, order_id: uuid.UUID, with_transactions: bool = False
    ) -> Optional[Order]:
        """Return the order or None."""
        stmt = select(Order).where(Order.id == order_id)
        if with_transactions:
            stmt = stmt.options(selectinload(Order.transactions)).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_order(self, order_id: uuid.UUID) -> Order:
        """Return the order or raise RecordNotFoundError."""
        order = await self.find_order_by_id(order_id)
        if order is None:
            raise RecordNotFoundError("Order", order_id)
        return order

    async def find_orders_page(self, offset: int, limit: int) -> List[Order]:
        """Orders newest first, with their transactions loaded."""
        stmt = (
            select(Order)
            .options(selectinload(Order.transactions))
            .order_by(desc(Order.created_at))
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_order(self, order: Order) -> Order:
        """Flush pending changes of a loaded order."""
        if order not in self.session:
            raise RecordNotFoundError("Order", order.id)
        await self.session.flush()
        return order

    async def count_orders(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Order))
        return int(result.scalar_one())

    # Payment methods

    async def create_payment_method(self, payment_method: PaymentMethod) -> PaymentMethod:
        self.session.add(payment_method)
        await self.session.flush()
        return payment_method

    async def find_payment_method_by_order(self, order_id: uuid.UUID) -> Optional[PaymentMethod]:
        stmt = select(PaymentMethod).where(PaymentMethod.order_id == order_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # Transactions

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def find_transaction_by_id(self, transaction_pk: uuid.UUID) -> Optional[Transaction]:
        stmt = select(Transaction).where(Transaction.id == transaction_pk)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_transaction(self, transaction_pk: uuid.UUID) -> Transaction:
        """Return the transaction or raise RecordNotFoundError."""
        transaction = await self.find_transaction_by_id(transaction_pk)
        if transaction is None:
            raise RecordNotFoundError("Transaction", transaction_pk)
        return transaction

    async def find_transaction_by_business_id(self, transaction_id: str) -> Optional[Transaction]:
        """Look up a transaction by its TXN_ identifier, parent order included."""
        stmt = (
            select(Transaction)
            .options(selectinload(Transaction.order))
            .where(Transaction.transaction_id == transaction_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_transactions_by_order(self, order_id: uuid.UUID) -> List[Transaction]:
        """All transactions of an order, most recent first."""
        stmt = (
            select(Transaction)
            .where(Transaction.order_id == order_id)
            .order_by(desc(Transaction.created_at))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction not in self.session:
            raise RecordNotFoundError("Transaction", transaction.id)
        await self.session.flush()
        return transaction

    async def count_transactions(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Transaction))
        return int(result.scalar_one())

    async def ping(self) -> bool:
        """Run a trivial query to prove connectivity."""
        result = await self.session.execute(text("SELECT 1"))
        return result.scalar() == 1
