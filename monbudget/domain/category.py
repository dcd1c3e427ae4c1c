"""
Category domain rules

Статьи (категории) для классификации доходов и расходов.
Тип статьи определяет допустимый знак суммы операции.
"""
from decimal import Decimal


# Category types
CATEGORY_TYPE_INCOME = "income"
CATEGORY_TYPE_EXPENSE = "expense"

CATEGORY_TYPES = (CATEGORY_TYPE_INCOME, CATEGORY_TYPE_EXPENSE)

DEFAULT_COLOR = "#3B82F6"

# Базовый справочник: (name, type, color)
DEFAULT_CATEGORIES = [
    ("Salary", CATEGORY_TYPE_INCOME, "#10B981"),
    ("Freelance", CATEGORY_TYPE_INCOME, "#22C55E"),
    ("Investments", CATEGORY_TYPE_INCOME, "#14B8A6"),
    ("Other income", CATEGORY_TYPE_INCOME, "#84CC16"),
    ("Food", CATEGORY_TYPE_EXPENSE, "#F97316"),
    ("Transport", CATEGORY_TYPE_EXPENSE, "#EAB308"),
    ("Housing", CATEGORY_TYPE_EXPENSE, "#EF4444"),
    ("Health", CATEGORY_TYPE_EXPENSE, "#EC4899"),
    ("Leisure", CATEGORY_TYPE_EXPENSE, "#8B5CF6"),
    ("Clothing", CATEGORY_TYPE_EXPENSE, "#6366F1"),
    ("Education", CATEGORY_TYPE_EXPENSE, "#0EA5E9"),
    ("Savings", CATEGORY_TYPE_EXPENSE, "#06B6D4"),
    ("Other expenses", CATEGORY_TYPE_EXPENSE, "#64748B"),
]


def category_type_for_amount(amount: Decimal) -> str | None:
    """
    Какой тип статьи требует сумма

    Returns:
        "income" для amount > 0, "expense" для amount < 0, None для нуля
    """
    if amount > 0:
        return CATEGORY_TYPE_INCOME
    if amount < 0:
        return CATEGORY_TYPE_EXPENSE
    return None


def sign_matches(category_type: str, amount: Decimal) -> bool:
    """Знак суммы совпадает с типом статьи (ноль не совпадает ни с чем)"""
    return category_type_for_amount(amount) == category_type
