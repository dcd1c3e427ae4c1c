"""
Account domain rules - account types and the overdraft rule
"""
from decimal import Decimal

# Account types
ACCOUNT_TYPE_CHECKING = "checking"  # Текущий счёт
ACCOUNT_TYPE_SAVINGS = "savings"    # Сберегательный
ACCOUNT_TYPE_CREDIT = "credit"      # Кредитная карта (баланс может быть < 0)
ACCOUNT_TYPE_MOBILE = "mobile"      # Мобильный кошелёк (Orange Money, Wave, ...)

ACCOUNT_TYPES = (
    ACCOUNT_TYPE_CHECKING,
    ACCOUNT_TYPE_SAVINGS,
    ACCOUNT_TYPE_CREDIT,
    ACCOUNT_TYPE_MOBILE,
)


def allows_negative_balance(account_type: str) -> bool:
    """Только кредитные счета могут уходить в минус"""
    return account_type == ACCOUNT_TYPE_CREDIT


def check_funds(account_type: str, balance: Decimal, delta: Decimal) -> tuple[bool, Decimal]:
    """
    Проверить, что изменение баланса на delta допустимо для счёта

    Уменьшение баланса некредитного счёта ниже нуля запрещено;
    увеличение баланса разрешено всегда.

    Returns:
        (ok, resulting_balance)

    Example:
        >>> check_funds("checking", Decimal("70000"), Decimal("-80000"))
        (False, Decimal('-10000'))
    """
    resulting = balance + delta
    if delta >= 0 or allows_negative_balance(account_type):
        return True, resulting
    return resulting >= 0, resulting
