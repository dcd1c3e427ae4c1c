"""
Budget domain rules: spend-vs-budget evaluation and window overlap
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

BUDGET_PERIODS = ("weekly", "monthly", "yearly")

STATUS_GOOD = "good"
STATUS_WARNING = "warning"
STATUS_OVER = "over"

# Порог "предупреждения", % использования
WARNING_THRESHOLD = 80

_ZERO = Decimal("0")


@dataclass(frozen=True)
class BudgetEvaluation:
    """
    Результат оценки бюджета

    percentage ограничен 100, статус считается по фактическому проценту.
    """
    amount: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: float
    is_over_budget: bool
    status: str

    def as_dict(self) -> dict:
        return {
            "spent": self.spent,
            "remaining": self.remaining,
            "percentage": self.percentage,
            "is_over_budget": self.is_over_budget,
            "status": self.status,
        }


def evaluate_budget(amount: Decimal, spent: Decimal) -> BudgetEvaluation:
    """
    Оценить бюджет

    Args:
        amount: Лимит бюджета (> 0, проверяется при создании)
        spent: Сумма |amount| расходов статьи в окне бюджета

    Example:
        >>> evaluate_budget(Decimal("50000"), Decimal("42500")).status
        'warning'
    """
    raw_percentage = (spent / amount * 100) if amount > 0 else _ZERO
    is_over = spent > amount

    if is_over:
        status = STATUS_OVER
    elif raw_percentage > WARNING_THRESHOLD:
        status = STATUS_WARNING
    else:
        status = STATUS_GOOD

    return BudgetEvaluation(
        amount=amount,
        spent=spent,
        remaining=max(_ZERO, amount - spent),
        percentage=round(float(min(Decimal(100), raw_percentage)), 2),
        is_over_budget=is_over,
        status=status,
    )


def windows_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """
    Пересекаются ли закрытые интервалы [start_a, end_a] и [start_b, end_b]

    Покрывает все случаи: частичное слева/справа, вложенный, охватывающий.
    """
    return start_a <= end_b and end_a >= start_b
