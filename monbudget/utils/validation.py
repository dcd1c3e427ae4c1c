"""
Validation utilities (используются pydantic-валидаторами запросов)
"""
import re
from decimal import Decimal, InvalidOperation

# Максимальная сумма одной операции по модулю
MAX_ABS_AMOUNT = Decimal("999999999")

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def normalize_decimal_input(value: str) -> str:
    """
    Нормализовать ввод суммы: заменить запятую на точку, убрать пробелы

    Example:
        >>> normalize_decimal_input("100 000,50")
        "100000.50"
    """
    return value.replace(" ", "").replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Валидация денежной суммы

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "Максимум 2 знака после запятой")
    """
    normalized = normalize_decimal_input(value)

    try:
        decimal_value = Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Некорректная сумма"

    if not decimal_value.is_finite():
        return False, "Некорректная сумма"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"Максимум {max_decimal_places} знака после запятой"

    if abs(decimal_value) > MAX_ABS_AMOUNT:
        return False, "Сумма слишком большая"

    return True, None


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2) -> str:
    """
    Валидировать и нормализовать сумму (raise exception при ошибке)

    Raises:
        ValueError: если валидация не прошла
    """
    is_valid, error = validate_decimal_amount(str(value), max_decimal_places)
    if not is_valid:
        raise ValueError(error)

    return normalize_decimal_input(str(value))


def validate_hex_color(value: str) -> str:
    """#RRGGBB"""
    if not _HEX_COLOR_RE.match(value):
        raise ValueError("Цвет должен быть в формате #RRGGBB")
    return value.upper()
