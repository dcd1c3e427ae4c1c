"""
Transaction domain rules

Знак суммы: amount > 0 - доход, amount < 0 - расход.
Здесь же - типизированная спецификация фильтра/сортировки ленты операций
и параметры поиска похожих операций.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

TYPE_INCOME = "income"
TYPE_EXPENSE = "expense"

# Поиск похожих: допуск по сумме 10% от |суммы| эталона
SIMILAR_AMOUNT_TOLERANCE = Decimal("0.10")

SIMILAR_RANK_SAME_DESCRIPTION = 1
SIMILAR_RANK_SAME_CATEGORY_AMOUNT = 2
SIMILAR_RANK_SAME_ACCOUNT = 3

COPY_SUFFIX = " (copy)"


def amount_tolerance(reference_amount: Decimal) -> Decimal:
    """|reference| * 0.10"""
    return abs(reference_amount) * SIMILAR_AMOUNT_TOLERANCE


def copy_description(original: str) -> str:
    """Описание дубликата по умолчанию"""
    return f"{original}{COPY_SUFFIX}"


class SortField(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    CATEGORY = "category"
    ACCOUNT = "account"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class GroupBy(str, Enum):
    CATEGORY = "category"
    ACCOUNT = "account"
    MONTH = "month"
    DAY = "day"


@dataclass(frozen=True)
class TransactionSort:
    """
    Сортировка ленты. Невалидные значения -> date desc.
    Для полей кроме date вторичный ключ - date desc.
    """
    field: SortField = SortField.DATE
    order: SortOrder = SortOrder.DESC

    @classmethod
    def parse(cls, field: str | None, order: str | None) -> "TransactionSort":
        try:
            sort_field = SortField(field) if field else SortField.DATE
        except ValueError:
            sort_field = SortField.DATE
        try:
            sort_order = SortOrder(order) if order else SortOrder.DESC
        except ValueError:
            sort_order = SortOrder.DESC
        return cls(field=sort_field, order=sort_order)


@dataclass(frozen=True)
class TransactionFilter:
    """Фильтр ленты операций (все поля опциональны)"""
    category: str | None = None  # имя статьи; "all" = без фильтра
    account_id: int | None = None
    type: str | None = None  # income / expense
    search: str | None = None  # подстрока description или notes
    start_date: date | None = None
    end_date: date | None = None

    @property
    def category_name(self) -> str | None:
        if not self.category or self.category == "all":
            return None
        return self.category
