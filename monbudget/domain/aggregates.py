"""
Running income/expense totals used by listings, period stats and analytics
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


def _avg(total: Decimal, count: int) -> Decimal:
    if not count:
        return _ZERO
    return (total / count).quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass
class Totals:
    """
    Накопитель по группе операций. expenses хранится положительным числом.
    """
    count: int = 0
    income: Decimal = _ZERO
    expenses: Decimal = _ZERO
    income_count: int = 0
    expense_count: int = 0

    def add(self, amount: Decimal) -> None:
        self.count += 1
        if amount > 0:
            self.income += amount
            self.income_count += 1
        elif amount < 0:
            self.expenses += -amount
            self.expense_count += 1

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses

    @property
    def avg_income(self) -> Decimal:
        return _avg(self.income, self.income_count)

    @property
    def avg_expense(self) -> Decimal:
        return _avg(self.expenses, self.expense_count)

    @property
    def savings_rate(self) -> float:
        """net / income * 100, 0 без доходов"""
        if self.income <= 0:
            return 0.0
        return round(float(self.net / self.income * 100), 2)

    def as_dict(self) -> dict:
        return {
            "count": self.count,
            "income": self.income,
            "expenses": self.expenses,
            "net": self.net,
            "avg_income": self.avg_income,
            "avg_expense": self.avg_expense,
        }
