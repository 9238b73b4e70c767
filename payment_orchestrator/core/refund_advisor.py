"""
Refund eligibility advisor.

Read-only guidance on whether a stored transaction should be refunded or
voided. It looks at elapsed time and status, which the orchestrator's own
refund gate does not: the orchestrator only rejects authorization-only
transactions. Treat the advice as guidance, not as the enforced rule.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from payment_orchestrator.database.models import Transaction, TransactionStatus, TransactionType

from .identifiers import ensure_utc, utcnow

DEFAULT_SETTLEMENT_WINDOW = timedelta(minutes=30)


@dataclass(frozen=True)
class RefundEligibility:
    transaction_id: str
    transaction_type: str
    transaction_status: str
    gateway_transaction_id: Optional[str]
    created_at: datetime
    time_since_creation: timedelta
    is_old_enough: bool
    can_be_refunded: bool
    should_use_void: bool
    recommended_action: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type,
            "transaction_status": self.transaction_status,
            "gateway_transaction_id": self.gateway_transaction_id,
            "created_at": self.created_at.isoformat(),
            "time_since_creation_minutes": round(self.time_since_creation.total_seconds() / 60, 2),
            "is_old_enough_for_refund": self.is_old_enough,
            "can_be_refunded": self.can_be_refunded,
            "should_use_void": self.should_use_void,
            "recommended_action": self.recommended_action,
        }


def _recommend(
    transaction: Transaction, is_old_enough: bool, elapsed: timedelta, window: timedelta
) -> str:
    if transaction.type == TransactionType.AUTHORIZE:
        return "Use VOID - Authorization transactions should be voided, not refunded"
    if transaction.type != TransactionType.PURCHASE:
        return "CHECK TRANSACTION TYPE - Unexpected transaction type"
    if not is_old_enough:
        minutes = elapsed.total_seconds() / 60
        return (
            f"WAIT or use VOID - Transaction is only {minutes:.0f} minutes old. "
            f"Wait {window.total_seconds() / 60:.0f}+ minutes for settlement or use void"
        )
    if transaction.status != TransactionStatus.SUCCESS:
        return "CANNOT REFUND - Transaction status is not Success"
    if not transaction.gateway_transaction_id:
        return "CANNOT REFUND - Missing Authorize.Net transaction ID"
    return "CAN REFUND - Transaction is eligible for refund"


def assess_refund_eligibility(
    transaction: Transaction,
    now: Optional[datetime] = None,
    settlement_window: timedelta = DEFAULT_SETTLEMENT_WINDOW,
) -> RefundEligibility:
    """
    Work out whether a transaction can be refunded or should be voided.

    A purchase is assumed settled by the gateway once ``settlement_window``
    has passed; before that only a void will go through.

    Args:
        transaction: Stored ledger record
        now: Reference time (defaults to the current UTC time)
        settlement_window: Age after which a purchase is refundable

    Returns:
        RefundEligibility: Flags plus a human-readable recommendation
    """
    created_at = ensure_utc(transaction.created_at)
    elapsed = ensure_utc(now or utcnow()) - created_at
    is_old_enough = elapsed >= settlement_window
    is_purchase = transaction.type == TransactionType.PURCHASE

    can_be_refunded = (
        is_purchase
        and transaction.status == TransactionStatus.SUCCESS
        and bool(transaction.gateway_transaction_id)
        and is_old_enough
    )
    should_use_void = transaction.type == TransactionType.AUTHORIZE or (
        is_purchase and not is_old_enough
    )

    return RefundEligibility(
        transaction_id=transaction.transaction_id,
        transaction_type=transaction.type.value,
        transaction_status=transaction.status.value,
        gateway_transaction_id=transaction.gateway_transaction_id,
        created_at=created_at,
        time_since_creation=elapsed,
        is_old_enough=is_old_enough,
        can_be_refunded=can_be_refunded,
        should_use_void=should_use_void,
        recommended_action=_recommend(transaction, is_old_enough, elapsed, settlement_window),
    )
