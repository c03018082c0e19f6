from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY_SYMBOL = "₦"
_CENTS = Decimal("0.01")


def format_currency(amount: Decimal | int | float | str | None, *, symbol: str = CURRENCY_SYMBOL) -> str:
    if amount is None:
        return f"{symbol}0.00"
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        return f"{symbol}0.00"
    if not value.is_finite():
        return f"{symbol}0.00"
    value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def format_date(value: datetime | date | str | None, *, fallback: str = "-") -> str:
    if value is None or value == "":
        return fallback
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return fallback
    return value.strftime("%b %d, %Y")


def default_reconciliation_title(today: date | None = None) -> str:
    stamp = today or date.today()
    return f"Stock Count - {stamp.strftime('%B %d, %Y')}"
