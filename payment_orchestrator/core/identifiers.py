"""
Business identifiers and UTC clock helpers.

Formats are shared with downstream systems and must not change:
    ORD_{yyyyMMddHHmmss}_{1000-9999}
    TXN_{yyyyMMddHHmmss}_{32 lowercase hex}
"""
import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

ORDER_NUMBER_PREFIX = "ORD_"
TRANSACTION_ID_PREFIX = "TXN_"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _compact(moment: datetime) -> str:
    return ensure_utc(moment).strftime("%Y%m%d%H%M%S")


def generate_order_number(now: Optional[datetime] = None) -> str:
    """Human-readable order number, e.g. ORD_20241201123456_7890."""
    return f"{ORDER_NUMBER_PREFIX}{_compact(now or utcnow())}_{random.randint(1000, 9999)}"


def generate_transaction_id(now: Optional[datetime] = None) -> str:
    """Human-readable transaction id, e.g. TXN_20241201123456_<uuid hex>."""
    return f"{TRANSACTION_ID_PREFIX}{_compact(now or utcnow())}_{uuid.uuid4().hex}"
