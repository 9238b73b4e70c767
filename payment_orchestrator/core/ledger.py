"""Transaction ledger: one record per orchestrated gateway operation."""
import uuid
from decimal import Decimal
from typing import List, Optional

import structlog

from payment_orchestrator.database.models import Transaction, TransactionStatus, TransactionType
from payment_orchestrator.database.store import RecordStore

from .identifiers import Clock, generate_transaction_id, utcnow
from .state_machine import check_transaction_transition

logger = structlog.get_logger(__name__)


class TransactionLedger:
    """Creates, settles and queries transaction records."""

    def __init__(self, store: RecordStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def create_transaction(
        self, order_id: uuid.UUID, transaction_type: TransactionType, amount: Decimal
    ) -> Transaction:
        """Record a Pending transaction with a fresh TXN_ identifier."""
        now = self.clock()
        transaction = Transaction(
            id=uuid.uuid4(),
            order_id=order_id,
            transaction_id=generate_transaction_id(now),
            type=transaction_type,
            amount=amount,
            status=TransactionStatus.PENDING,
            created_at=now,
        )
        await self.store.create_transaction(transaction)

        logger.info(
            "transaction_created",
            transaction_id=transaction.transaction_id,
            order_id=str(order_id),
            type=transaction_type.value,
            amount=str(amount),
        )
        return transaction

    async def update_transaction(
        self,
        transaction_pk: uuid.UUID,
        status: TransactionStatus,
        response_code: Optional[str] = None,
        response_message: Optional[str] = None,
        gateway_transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Overwrite the outcome fields of a transaction.

        Optional fields are not merged: leaving one out clears it.

        Raises:
            RecordNotFoundError: If the transaction does not exist
            IllegalTransitionError: If the transaction has already settled
        """
        transaction = await self.store.get_transaction(transaction_pk)
        check_transaction_transition(transaction.status, status)
        transaction.status = status
        transaction.response_code = response_code
        transaction.response_message = response_message
        transaction.gateway_transaction_id = gateway_transaction_id
        await self.store.update_transaction(transaction)

        logger.info(
            "transaction_updated",
            transaction_id=transaction.transaction_id,
            status=status.value,
            response_code=response_code,
            gateway_transaction_id=gateway_transaction_id,
        )
        return transaction

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Transaction by business id with its order loaded, or None."""
        return await self.store.find_transaction_by_business_id(transaction_id)

    async def list_order_transactions(self, order_id: uuid.UUID) -> List[Transaction]:
        """Transactions of an order, most recent first."""
        return await self.store.find_transactions_by_order(order_id)
