"""
Money helpers: normalizing DB aggregates and formatting amounts.

Usage:
    from monbudget.utils.money import to_money, format_money

    to_money(42500.0)          -> Decimal("42500.00")
    format_money(150000)       -> "150 000 CFA"
"""
from decimal import Decimal, ROUND_HALF_UP

from monbudget.config import get_settings

_CENT = Decimal("0.01")

# Суффикс для XOF - «CFA», для остальных - ISO-код валюты
_CURRENCY_SUFFIX = {
    "XOF": "CFA",
    "XAF": "FCFA",
}


def to_money(value) -> Decimal:
    """
    Привести значение из БД (Decimal / float / int / None) к Decimal с 2 знаками.

    SUM/AVG в SQLite возвращают float, в PostgreSQL - Decimal;
    NULL (пустая выборка) -> 0.00
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def currency_label(code: str) -> str:
    """Человекочитаемый суффикс валюты."""
    return _CURRENCY_SUFFIX.get(code, code)


def format_money(amount, currency: str | None = None, decimals: int = 0) -> str:
    """
    Отформатировать сумму с пробелами-разделителями тысяч и суффиксом валюты.

    Args:
        amount: число (int / float / Decimal / str)
        currency: ISO-код валюты (по умолчанию Settings.CURRENCY)
        decimals: знаков после запятой

    Returns:
        "150 000 CFA"
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    currency = currency or get_settings().CURRENCY
    fmt = f"{{:,.{decimals}f}}"
    formatted = fmt.format(amount).replace(",", " ")
    return f"{formatted} {currency_label(currency)}"
