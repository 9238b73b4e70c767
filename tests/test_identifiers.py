"""
Unit tests for business identifiers and clock helpers.
"""
import re
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from payment_orchestrator.core.identifiers import (
    ensure_utc,
    generate_order_number,
    generate_transaction_id,
)

MOMENT = datetime(2024, 12, 1, 12, 34, 56, tzinfo=timezone.utc)


class TestOrderNumber:
    """Test suite for order numbers."""

    @pytest.mark.unit
    def test_format(self) -> None:
        """Order numbers are ORD_, a UTC timestamp and four digits."""
        assert re.fullmatch(r"ORD_20241201123456_\d{4}", generate_order_number(MOMENT))

    @pytest.mark.unit
    def test_random_suffix_range(self) -> None:
        """The suffix comes from 1000-9999 inclusive."""
        with patch("payment_orchestrator.core.identifiers.random.randint", return_value=9999) as randint:
            assert generate_order_number(MOMENT) == "ORD_20241201123456_9999"
        randint.assert_called_once_with(1000, 9999)

    @pytest.mark.unit
    def test_timestamp_is_utc(self) -> None:
        """Aware non-UTC times are converted before formatting."""
        eastern = MOMENT.astimezone(timezone(timedelta(hours=-5)))
        assert generate_order_number(eastern).startswith("ORD_20241201123456_")


class TestTransactionId:
    """Test suite for ledger transaction ids."""

    @pytest.mark.unit
    def test_format(self) -> None:
        """Transaction ids are TXN_, a UTC timestamp and 32 lowercase hex chars."""
        assert re.fullmatch(r"TXN_20241201123456_[0-9a-f]{32}", generate_transaction_id(MOMENT))

    @pytest.mark.unit
    def test_unique(self) -> None:
        """Two ids generated in the same second still differ."""
        assert generate_transaction_id(MOMENT) != generate_transaction_id(MOMENT)


class TestEnsureUtc:
    """Test suite for naive datetime handling."""

    @pytest.mark.unit
    def test_naive_is_treated_as_utc(self) -> None:
        """Naive values read back from SQLite are tagged as UTC."""
        assert ensure_utc(datetime(2024, 12, 1, 12, 0)) == datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc)
