"""Order lifecycle manager: creation, lookup, paging and status updates."""
import uuid
from typing import List, Optional

import structlog

from payment_orchestrator.database.models import Order, OrderStatus, PaymentMethod
from payment_orchestrator.database.store import RecordStore

from .identifiers import Clock, generate_order_number, utcnow
from .models import PaymentRequest

logger = structlog.get_logger(__name__)


class OrderManager:
    """Creates orders and tracks their status."""

    def __init__(self, store: RecordStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def create_order(self, request: PaymentRequest) -> Order:
        """
        Create a Pending order and its payment method.

        Both rows are written in a single flush, so they commit or roll
        back together with the caller's store transaction.

        Args:
            request: Validated payment request

        Returns:
            Order: The created order
        """
        now = self.clock()
        card = request.credit_card
        order = Order(
            id=uuid.uuid4(),
            order_number=generate_order_number(now),
            customer_id=request.customer_id,
            amount=request.amount,
            currency=request.currency or "USD",
            status=OrderStatus.PENDING,
            description=request.description,
            created_at=now,
            updated_at=now,
        )
        payment_method = PaymentMethod(
            id=uuid.uuid4(),
            last_four_digits=card.last_four_digits,
            expiration_month=card.expiration_month,
            expiration_year=card.expiration_year,
            name_on_card=card.name_on_card,
        )
        await self.store.create_order(order, payment_method)

        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=order.customer_id,
            amount=str(order.amount),
        )
        return order

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        """Order with its transactions (oldest first), or None."""
        return await self.store.find_order_by_id(order_id, with_transactions=True)

    async def list_orders(self, page: int = 1, page_size: int = 10) -> List[Order]:
        """Newest orders first. Callers clamp page and page_size."""
        return await self.store.find_orders_page(offset=(page - 1) * page_size, limit=page_size)

    async def update_order_status(self, order_id: uuid.UUID, status: OrderStatus) -> Order:
        """
        Overwrite an order's status.

        Raises:
            RecordNotFoundError: If the order does not exist
        """
        order = await self.store.get_order(order_id)
        previous = order.status
        order.status = status
        order.updated_at = self.clock()
        await self.store.update_order(order)

        logger.info(
            "order_status_updated",
            order_id=str(order_id),
            previous_status=previous.value,
            status=status.value,
        )
        return order
