"""
Formatting helpers for amounts and dates (also registered as Jinja filters).
Amounts are Indian Rupees.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

CURRENCY_SYMBOL = "₹"

Number = Union[int, float, Decimal, str, None]


def _to_decimal(value: Number) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def format_inr(value: Number, decimals: int = 2, show_decimals: bool = True) -> str:
    """
    Format an amount in rupees.

    Examples:
        format_inr(1500) -> "₹1500.00"
        format_inr("99.5") -> "₹99.50"
        format_inr(1499.6, show_decimals=False) -> "₹1500"
        format_inr("abc") -> "₹0"
    """
    num = _to_decimal(value)
    if num is None:
        return f"{CURRENCY_SYMBOL}0"

    if not show_decimals:
        return f"{CURRENCY_SYMBOL}{num.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"
    return f"{CURRENCY_SYMBOL}{num.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)}"


def format_inr_compact(value: Number) -> str:
    """
    Short form for dashboards: crore, lakh and thousand.

    Examples:
        format_inr_compact(25000000) -> "₹2.5Cr"
        format_inr_compact(150000) -> "₹1.5L"
        format_inr_compact(1200) -> "₹1.2K"
        format_inr_compact(999) -> "₹999"
    """
    num = _to_decimal(value)
    if num is None:
        return f"{CURRENCY_SYMBOL}0"

    one_place = Decimal('0.1')
    if num >= 10000000:
        return f"{CURRENCY_SYMBOL}{(num / 10000000).quantize(one_place, rounding=ROUND_HALF_UP)}Cr"
    if num >= 100000:
        return f"{CURRENCY_SYMBOL}{(num / 100000).quantize(one_place, rounding=ROUND_HALF_UP)}L"
    if num >= 1000:
        return f"{CURRENCY_SYMBOL}{(num / 1000).quantize(one_place, rounding=ROUND_HALF_UP)}K"
    return f"{CURRENCY_SYMBOL}{num.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"


def format_date_in(value: Union[date, datetime, None], with_time: bool = False) -> str:
    """
    DD/MM/YYYY (optionally with HH:MM), "-" for empty values.

    Examples:
        format_date_in(date(2026, 1, 12)) -> "12/01/2026"
        format_date_in(datetime(2026, 1, 12, 15, 30), with_time=True) -> "12/01/2026 15:30"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        if with_time:
            return value.strftime("%d/%m/%Y %H:%M")
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")
