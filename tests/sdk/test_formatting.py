from __future__ import annotations

from datetime import date
from decimal import Decimal

from invdash_client_sdk.formatting import (
    default_reconciliation_title,
    format_currency,
    format_date,
    format_signed,
)


def test_format_currency_naira() -> None:
    assert format_currency(Decimal("1234.5")) == "₦1,234.50"
    assert format_currency(-3) == "-₦3.00"
    assert format_currency("0.005") == "₦0.01"
    assert format_currency(None) == "₦0.00"
    assert format_currency("not-a-number") == "₦0.00"


def test_format_signed() -> None:
    assert format_signed(2) == "+2"
    assert format_signed(0) == "0"
    assert format_signed(-3) == "-3"


def test_format_date() -> None:
    assert format_date("2025-01-05T10:00:00.000Z") == "Jan 05, 2025"
    assert format_date(date(2024, 12, 31)) == "Dec 31, 2024"
    assert format_date(None) == "-"
    assert format_date("yesterday") == "-"


def test_default_title_uses_the_count_date() -> None:
    assert default_reconciliation_title(date(2025, 1, 5)) == "Stock Count - January 05, 2025"
