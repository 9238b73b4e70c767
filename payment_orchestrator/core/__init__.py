"""Payment core: order and ledger bookkeeping, orchestration and refund advice."""
from .exceptions import (
    IllegalTransitionError,
    PaymentError,
    PaymentRequestError,
    RecordNotFoundError,
)
from .ledger import TransactionLedger
from .models import CaptureRequest, CreditCard, PaymentRequest, PaymentResult, RefundRequest
from .orchestrator import PaymentOrchestrator, extract_error_message
from .orders import OrderManager
from .refund_advisor import RefundEligibility, assess_refund_eligibility
from .state_machine import OrderEvent, next_order_status

__all__ = [
    "CaptureRequest",
    "CreditCard",
    "IllegalTransitionError",
    "OrderEvent",
    "OrderManager",
    "PaymentError",
    "PaymentOrchestrator",
    "PaymentRequest",
    "PaymentRequestError",
    "PaymentResult",
    "RecordNotFoundError",
    "RefundEligibility",
    "RefundRequest",
    "TransactionLedger",
    "assess_refund_eligibility",
    "extract_error_message",
    "next_order_status",
]
