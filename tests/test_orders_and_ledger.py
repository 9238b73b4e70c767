"""
Unit tests for the order manager and the transaction ledger.
"""
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any

import pytest

from payment_orchestrator.api.schemas import OrderResponse
from payment_orchestrator.core.exceptions import IllegalTransitionError, RecordNotFoundError
from payment_orchestrator.core.identifiers import ensure_utc
from payment_orchestrator.core.ledger import TransactionLedger
from payment_orchestrator.core.models import CreditCard, PaymentRequest
from payment_orchestrator.core.orders import OrderManager
from payment_orchestrator.database.models import OrderStatus, TransactionStatus, TransactionType
from payment_orchestrator.database.store import RecordStore


class TestOrderManager:
    """Test suite for OrderManager."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_order(
        self, store: RecordStore, payment_request: PaymentRequest, clock: Any
    ) -> None:
        """A new order is Pending with a stored payment method and no card secrets."""
        manager = OrderManager(store, clock=clock)
        async with store.transaction():
            order = await manager.create_order(payment_request)

        assert order.status == OrderStatus.PENDING
        assert order.order_number.startswith("ORD_20241201120000_")
        assert order.amount == Decimal("100.50")
        assert order.currency == "USD"

        payment_method = await store.find_payment_method_by_order(order.id)
        assert payment_method is not None
        assert payment_method.last_four_digits == "1111"
        assert payment_method.expiration_month == 12
        assert payment_method.expiration_year == 2030
        assert payment_method.name_on_card == "John Doe"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_short_card_number_kept_whole(self, store: RecordStore) -> None:
        """A card number shorter than four characters is stored as-is."""
        request = PaymentRequest(
            customer_id="CUST_1",
            amount=Decimal("1.00"),
            credit_card=CreditCard(
                card_number="123", expiration_month=1, expiration_year=2030, cvv="999"
            ),
        )
        async with store.transaction():
            order = await OrderManager(store).create_order(request)

        payment_method = await store.find_payment_method_by_order(order.id)
        assert payment_method.last_four_digits == "123"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_missing_returns_none(self, store: RecordStore) -> None:
        """Unknown ids are not an error for get_order."""
        assert await OrderManager(store).get_order(uuid.uuid4()) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_order_is_repeatable(
        self, store: RecordStore, payment_request: PaymentRequest
    ) -> None:
        """Reading an order twice without changes gives identical output."""
        manager = OrderManager(store)
        async with store.transaction():
            order = await manager.create_order(payment_request)
            await TransactionLedger(store).create_transaction(
                order.id, TransactionType.PURCHASE, order.amount
            )

        first = OrderResponse.from_order(await manager.get_order(order.id)).model_dump_json()
        second = OrderResponse.from_order(await manager.get_order(order.id)).model_dump_json()
        assert first == second

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_orders_newest_first(
        self, store: RecordStore, payment_request: PaymentRequest, clock: Any
    ) -> None:
        """Pages are ordered by creation time, newest first."""
        manager = OrderManager(store, clock=clock)
        async with store.transaction():
            created = [await manager.create_order(payment_request) for _ in range(3)]

        page = await manager.list_orders(page=1, page_size=2)
        assert [o.id for o in page] == [created[2].id, created[1].id]

        second_page = await manager.list_orders(page=2, page_size=2)
        assert [o.id for o in second_page] == [created[0].id]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_order_status(
        self, store: RecordStore, payment_request: PaymentRequest, clock: Any
    ) -> None:
        """Status is overwritten and updated_at refreshed."""
        manager = OrderManager(store, clock=clock)
        async with store.transaction():
            order = await manager.create_order(payment_request)
        created_at = order.updated_at

        async with store.transaction():
            updated = await manager.update_order_status(order.id, OrderStatus.AUTHORIZED)

        assert updated.status == OrderStatus.AUTHORIZED
        assert ensure_utc(updated.updated_at) > ensure_utc(created_at)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_unknown_order_raises(self, store: RecordStore) -> None:
        """Updating a missing order signals not-found."""
        with pytest.raises(RecordNotFoundError):
            await OrderManager(store).update_order_status(uuid.uuid4(), OrderStatus.CAPTURED)


class TestTransactionLedger:
    """Test suite for TransactionLedger."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_transaction(
        self, store: RecordStore, payment_request: PaymentRequest
    ) -> None:
        """New entries are Pending with a TXN_ id and the order's id."""
        async with store.transaction():
            order = await OrderManager(store).create_order(payment_request)
            transaction = await TransactionLedger(store).create_transaction(
                order.id, TransactionType.AUTHORIZE, Decimal("100.50")
            )

        assert transaction.status == TransactionStatus.PENDING
        assert transaction.transaction_id.startswith("TXN_")
        assert transaction.order_id == order.id
        assert transaction.gateway_transaction_id is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_order_transactions_newest_first(
        self, store: RecordStore, payment_request: PaymentRequest, clock: Any
    ) -> None:
        """Entries created at T and T+10min come back as [T+10min, T]."""
        clock.step = timedelta(minutes=10)
        ledger = TransactionLedger(store, clock=clock)
        async with store.transaction():
            order = await OrderManager(store).create_order(payment_request)
            first = await ledger.create_transaction(order.id, TransactionType.AUTHORIZE, order.amount)
            second = await ledger.create_transaction(order.id, TransactionType.CAPTURE, order.amount)

        listed = await ledger.list_order_transactions(order.id)
        assert [t.id for t in listed] == [second.id, first.id]
        assert ensure_utc(listed[0].created_at) - ensure_utc(listed[1].created_at) == timedelta(minutes=10)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_transaction_overwrites_fields(
        self, store: RecordStore, payment_request: PaymentRequest
    ) -> None:
        """Outcome fields left out are stored as NULL."""
        ledger = TransactionLedger(store)
        async with store.transaction():
            order = await OrderManager(store).create_order(payment_request)
            transaction = await ledger.create_transaction(order.id, TransactionType.PURCHASE, order.amount)
            transaction.gateway_transaction_id = "stale"
            await ledger.update_transaction(transaction.id, TransactionStatus.FAILED)

        stored = await ledger.get_transaction(transaction.transaction_id)
        assert stored.status == TransactionStatus.FAILED
        assert stored.gateway_transaction_id is None
        assert stored.response_code is None
        assert stored.response_message is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_settled_transaction_rejected(
        self, store: RecordStore, payment_request: PaymentRequest
    ) -> None:
        """A settled entry cannot be settled again."""
        ledger = TransactionLedger(store)
        async with store.transaction():
            order = await OrderManager(store).create_order(payment_request)
            transaction = await ledger.create_transaction(order.id, TransactionType.PURCHASE, order.amount)
            await ledger.update_transaction(
                transaction.id, TransactionStatus.SUCCESS, "1", "Approved", "60123456789"
            )

        with pytest.raises(IllegalTransitionError):
            await ledger.update_transaction(transaction.id, TransactionStatus.FAILED)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_update_unknown_transaction_raises(self, store: RecordStore) -> None:
        """Updating a missing entry signals not-found."""
        with pytest.raises(RecordNotFoundError):
            await TransactionLedger(store).update_transaction(uuid.uuid4(), TransactionStatus.FAILED)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_transaction_missing(self, store: RecordStore) -> None:
        """Unknown business ids return None."""
        assert await TransactionLedger(store).get_transaction("TXN_unknown") is None
