"""
Payment orchestrator: purchase, authorize, capture, void and refund.

Every operation follows the same template:
1. Write the local records (order and/or ledger entry) and commit
2. Call the gateway exactly once, outside any database transaction
3. Record the outcome and move the order through the transition table

Operations never raise for business or gateway failures; they return a
PaymentResult. The one exception is a missing request object, which is a
programming error on the caller's side.
"""
import time
from decimal import Decimal
from typing import Optional

import structlog

from payment_orchestrator.database.models import (
    Order,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from payment_orchestrator.database.store import RecordStore
from payment_orchestrator.integrations.authorize_net import (
    AuthorizeNetClient,
    CardDetails,
    GatewayError,
    GatewayOperation,
    GatewayRequest,
    GatewayResponse,
)
from payment_orchestrator.monitoring.metrics import metrics

from .exceptions import PaymentRequestError
from .ledger import TransactionLedger
from .models import PaymentRequest, PaymentResult
from .orders import OrderManager
from .state_machine import OrderEvent, can_transition, next_order_status

logger = structlog.get_logger(__name__)

UNKNOWN_GATEWAY_ERROR = "Unknown error occurred - check Authorize.Net credentials and configuration"


def extract_error_message(response: Optional[GatewayResponse]) -> str:
    """
    Pick the most specific failure text a gateway response offers.

    Order: first transaction error, first top-level message, the
    transaction response code, the top-level result code, then a generic
    fallback (also used when there was no response at all).
    """
    if response is None:
        return UNKNOWN_GATEWAY_ERROR
    if response.errors and response.errors[0].text:
        return response.errors[0].text
    if response.messages and response.messages[0].text:
        return response.messages[0].text
    if response.response_code is not None:
        return f"Transaction failed with response code: {response.response_code}"
    if response.result_code is not None:
        return f"API call failed with result code: {response.result_code}"
    return UNKNOWN_GATEWAY_ERROR


class PaymentOrchestrator:
    """
    Sequences local bookkeeping with one gateway call per operation.

    Handles:
    - Initial payments (purchase, authorize) that create the order
    - Follow-up operations (capture, void, refund) on a stored transaction
    - Mapping gateway outcomes onto order and transaction status
    """

    def __init__(
        self,
        store: RecordStore,
        gateway: AuthorizeNetClient,
        orders: Optional[OrderManager] = None,
        ledger: Optional[TransactionLedger] = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            store: Record store bound to the current session
            gateway: Authorize.Net client
            orders: Order manager (defaults to one over ``store``)
            ledger: Transaction ledger (defaults to one over ``store``)
        """
        self.store = store
        self.gateway = gateway
        self.orders = orders or OrderManager(store)
        self.ledger = ledger or TransactionLedger(store)

    async def purchase(self, request: PaymentRequest) -> PaymentResult:
        """
        Authorize and capture a card payment in one step.

        Args:
            request: Validated payment request

        Returns:
            PaymentResult: "Captured" on approval, "Failed" on decline

        Raises:
            PaymentRequestError: If no request was given
        """
        return await self._initial_payment(
            request,
            operation="purchase",
            gateway_operation=GatewayOperation.AUTH_CAPTURE,
            transaction_type=TransactionType.PURCHASE,
            approved_event=OrderEvent.PURCHASE_APPROVED,
            success_message="Transaction completed successfully",
            error_noun="payment",
        )

    async def authorize(self, request: PaymentRequest) -> PaymentResult:
        """
        Place a hold on the card without capturing funds.

        Raises:
            PaymentRequestError: If no request was given
        """
        return await self._initial_payment(
            request,
            operation="authorize",
            gateway_operation=GatewayOperation.AUTH_ONLY,
            transaction_type=TransactionType.AUTHORIZE,
            approved_event=OrderEvent.AUTHORIZATION_APPROVED,
            success_message="Authorization completed successfully",
            error_noun="authorization",
        )

    async def capture(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        """
        Capture funds held by an earlier authorization.

        Args:
            transaction_id: Business id (TXN_...) of the authorization
            amount: Amount to capture

        Returns:
            PaymentResult: "Captured" on approval; the order is left alone on decline
        """
        if amount is None:
            raise PaymentRequestError("Capture amount is required")

        started = time.time()
        logger.info("capture_started", reference_transaction_id=transaction_id, amount=str(amount))
        try:
            async with self.store.transaction():
                original = await self.ledger.get_transaction(transaction_id)
                rejection = self._check_reference(original) or self._check_transition(
                    original, OrderEvent.CAPTURE_APPROVED, "capture"
                )
                if rejection is not None:
                    return self._finish("capture", started, rejection)
                capture_txn = await self.ledger.create_transaction(
                    original.order_id, TransactionType.CAPTURE, amount
                )

            response = await self._submit(
                GatewayRequest(
                    operation=GatewayOperation.PRIOR_AUTH_CAPTURE,
                    amount=amount,
                    ref_transaction_id=original.gateway_transaction_id,
                )
            )
            result = await self._settle(
                original.order,
                capture_txn,
                amount,
                response,
                approved_event=OrderEvent.CAPTURE_APPROVED,
                success_message="Capture completed successfully",
            )
        except Exception:
            logger.exception("capture_error", reference_transaction_id=transaction_id)
            result = PaymentResult.error("An error occurred while processing the capture")
        return self._finish("capture", started, result)

    async def void(self, transaction_id: str) -> PaymentResult:
        """
        Cancel an authorization or an unsettled purchase.

        The void is recorded with the original transaction's amount; the
        gateway request itself carries no amount.
        """
        started = time.time()
        logger.info("void_started", reference_transaction_id=transaction_id)
        try:
            async with self.store.transaction():
                original = await self.ledger.get_transaction(transaction_id)
                rejection = self._check_reference(original) or self._check_transition(
                    original, OrderEvent.VOID_APPROVED, "void"
                )
                if rejection is not None:
                    return self._finish("void", started, rejection)
                void_txn = await self.ledger.create_transaction(
                    original.order_id, TransactionType.VOID, original.amount
                )

            response = await self._submit(
                GatewayRequest(
                    operation=GatewayOperation.VOID,
                    ref_transaction_id=original.gateway_transaction_id,
                )
            )
            result = await self._settle(
                original.order,
                void_txn,
                original.amount,
                response,
                approved_event=OrderEvent.VOID_APPROVED,
                success_message="Void completed successfully",
            )
        except Exception:
            logger.exception("void_error", reference_transaction_id=transaction_id)
            result = PaymentResult.error("An error occurred while processing the void")
        return self._finish("void", started, result)

    async def refund(
        self, transaction_id: str, amount: Decimal, reason: Optional[str] = None
    ) -> PaymentResult:
        """
        Refund part or all of a settled payment.

        Authorization-only transactions are rejected before anything is
        written: they must be voided instead. The gateway needs a card
        reference for refunds, so the order's stored payment method is sent
        as a masked card number.

        Args:
            transaction_id: Business id (TXN_...) of the payment to refund
            amount: Amount to refund
            reason: Free-text reason, logged only

        Returns:
            PaymentResult: "Refunded" on approval; the order is left alone on decline
        """
        if amount is None:
            raise PaymentRequestError("Refund amount is required")

        started = time.time()
        logger.info(
            "refund_started",
            reference_transaction_id=transaction_id,
            amount=str(amount),
            reason=reason,
        )
        try:
            async with self.store.transaction():
                original = await self.ledger.get_transaction(transaction_id)
                rejection = self._check_reference(original)
                if rejection is None and original.type == TransactionType.AUTHORIZE:
                    rejection = PaymentResult.error(
                        "Cannot refund authorization-only transaction. Use void instead."
                    )
                if rejection is None:
                    rejection = self._check_transition(original, OrderEvent.REFUND_APPROVED, "refund")
                if rejection is not None:
                    return self._finish("refund", started, rejection)

                refund_txn = await self.ledger.create_transaction(
                    original.order_id, TransactionType.REFUND, amount
                )
                payment_method = await self.store.find_payment_method_by_order(original.order_id)
                if payment_method is None:
                    message = "Payment method information not found for refund"
                    await self.ledger.update_transaction(
                        refund_txn.id, TransactionStatus.FAILED, response_message=message
                    )
                    logger.warning(
                        "refund_payment_method_missing",
                        order_id=str(original.order_id),
                        transaction_id=refund_txn.transaction_id,
                    )
                    return self._finish("refund", started, PaymentResult.error(message))

            response = await self._submit(
                GatewayRequest(
                    operation=GatewayOperation.REFUND,
                    amount=amount,
                    card=CardDetails.masked(
                        payment_method.last_four_digits,
                        payment_method.expiration_month,
                        payment_method.expiration_year,
                    ),
                    ref_transaction_id=original.gateway_transaction_id,
                )
            )
            result = await self._settle(
                original.order,
                refund_txn,
                amount,
                response,
                approved_event=OrderEvent.REFUND_APPROVED,
                success_message="Refund completed successfully",
            )
        except Exception:
            logger.exception("refund_error", reference_transaction_id=transaction_id)
            result = PaymentResult.error("An error occurred while processing the refund")
        return self._finish("refund", started, result)

    async def _initial_payment(
        self,
        request: PaymentRequest,
        operation: str,
        gateway_operation: GatewayOperation,
        transaction_type: TransactionType,
        approved_event: OrderEvent,
        success_message: str,
        error_noun: str,
    ) -> PaymentResult:
        if request is None:
            raise PaymentRequestError(f"A payment request is required to {operation}")

        started = time.time()
        logger.info(
            f"{operation}_started",
            customer_id=request.customer_id,
            amount=str(request.amount),
            currency=request.currency,
        )
        try:
            async with self.store.transaction():
                order = await self.orders.create_order(request)
                transaction = await self.ledger.create_transaction(
                    order.id, transaction_type, request.amount
                )

            card = request.credit_card
            response = await self._submit(
                GatewayRequest(
                    operation=gateway_operation,
                    amount=request.amount,
                    card=CardDetails(
                        card_number=card.card_number,
                        expiration_date=card.expiration_date,
                        card_code=card.cvv,
                    ),
                )
            )
            result = await self._settle(
                order,
                transaction,
                request.amount,
                response,
                approved_event=approved_event,
                success_message=success_message,
                declined_event=OrderEvent.INITIAL_PAYMENT_DECLINED,
            )
        except Exception:
            logger.exception(f"{operation}_error", customer_id=request.customer_id)
            result = PaymentResult.error(f"An error occurred while processing the {error_noun}")
        return self._finish(operation, started, result)

    async def _submit(self, request: GatewayRequest) -> Optional[GatewayResponse]:
        """Call the gateway once; a transport fault counts as no response."""
        try:
            return await self.gateway.submit_transaction(request)
        except GatewayError as e:
            logger.warning(
                "gateway_unavailable",
                operation=request.operation.value,
                error=str(e),
                error_type=e.error_type.value,
            )
            return None

    async def _settle(
        self,
        order: Order,
        transaction: Transaction,
        amount: Decimal,
        response: Optional[GatewayResponse],
        approved_event: OrderEvent,
        success_message: str,
        declined_event: Optional[OrderEvent] = None,
    ) -> PaymentResult:
        """Record the gateway outcome on the ledger entry and the order."""
        async with self.store.transaction():
            if response is not None and response.is_approved:
                await self.ledger.update_transaction(
                    transaction.id,
                    TransactionStatus.SUCCESS,
                    response_code=response.response_code,
                    response_message=response.first_transaction_message,
                    gateway_transaction_id=response.transaction_id,
                )
                new_status = next_order_status(order.status, approved_event)
                await self.orders.update_order_status(order.id, new_status)

                logger.info(
                    "payment_operation_approved",
                    transaction_id=transaction.transaction_id,
                    order_number=order.order_number,
                    gateway_transaction_id=response.transaction_id,
                    order_status=new_status.value,
                )
                return PaymentResult(
                    success=True,
                    status=new_status.value,
                    transaction_id=transaction.transaction_id,
                    order_number=order.order_number,
                    amount=amount,
                    gateway_transaction_id=response.transaction_id,
                    message=success_message,
                )

            error_message = extract_error_message(response)
            response_code = response.response_code if response is not None else None
            await self.ledger.update_transaction(
                transaction.id,
                TransactionStatus.FAILED,
                response_code=response_code,
                response_message=error_message,
            )
            if declined_event is not None:
                await self.orders.update_order_status(
                    order.id, next_order_status(order.status, declined_event)
                )

            logger.warning(
                "payment_operation_declined",
                transaction_id=transaction.transaction_id,
                order_number=order.order_number,
                response_code=response_code,
                error=error_message,
            )
            return PaymentResult(
                success=False,
                status="Failed",
                transaction_id=transaction.transaction_id,
                order_number=order.order_number,
                amount=amount,
                message=error_message,
                error_code=response_code,
            )

    @staticmethod
    def _check_reference(original: Optional[Transaction]) -> Optional[PaymentResult]:
        if original is None:
            return PaymentResult.error("Transaction not found")
        if not original.gateway_transaction_id:
            return PaymentResult.error("No Authorize.Net transaction ID found")
        return None

    @staticmethod
    def _check_transition(
        original: Transaction, event: OrderEvent, action: str
    ) -> Optional[PaymentResult]:
        """Reject follow-ups whose approval the order could not absorb."""
        status = original.order.status
        if can_transition(status, event):
            return None
        logger.warning(
            "payment_operation_rejected",
            action=action,
            order_id=str(original.order_id),
            order_status=status.value,
        )
        return PaymentResult.error(f"Cannot {action} order in status {status.value}")

    @staticmethod
    def _finish(operation: str, started: float, result: PaymentResult) -> PaymentResult:
        if result.success:
            outcome = "success"
        else:
            outcome = "error" if result.status == "Error" else "failed"
        metrics.record_payment_operation(operation, outcome, time.time() - started)
        logger.info(
            f"{operation}_completed",
            success=result.success,
            status=result.status,
            transaction_id=result.transaction_id or None,
            order_number=result.order_number or None,
        )
        return result
