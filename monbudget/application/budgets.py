"""
Budget Evaluator

Бюджет - лимит расходов по статье расходов на окно [start_date, end_date].
"Потрачено" не хранится: это сумма |amount| расходных операций владельца
по статье с датой внутри окна (включительно).

Два бюджета одного владельца по одной статье не могут пересекаться по датам.
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from monbudget.application.categories import get_category
from monbudget.application.errors import (
    NotFoundError, ConflictError, InvalidStateError,
    BUDGET_NOT_FOUND, INVALID_CATEGORY_TYPE, OVERLAPPING_BUDGET,
    INVALID_BUDGET_WINDOW, INVALID_BUDGET_PERIOD, INVALID_AMOUNT,
)
from monbudget.application.views import budget_view, transaction_view
from monbudget.domain.budget import BUDGET_PERIODS, BudgetEvaluation, evaluate_budget, windows_overlap
from monbudget.domain.category import CATEGORY_TYPE_EXPENSE
from monbudget.infrastructure.db.models import Account, Budget, Category, Transaction
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.clock import today_local
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)


def spent_for(db: Session, owner_id: int, category_id: int, start: date, end: date) -> Decimal:
    """Сумма |amount| расходов статьи за [start, end]"""
    total = db.query(func.sum(-Transaction.amount)).filter(
        Transaction.owner_id == owner_id,
        Transaction.category_id == category_id,
        Transaction.amount < 0,
        Transaction.date >= start,
        Transaction.date <= end,
    ).scalar()
    return to_money(total)


def evaluate(db: Session, budget: Budget) -> BudgetEvaluation:
    spent = spent_for(db, budget.owner_id, budget.category_id, budget.start_date, budget.end_date)
    return evaluate_budget(to_money(budget.amount), spent)


def _get_owned(db: Session, owner_id: int, budget_id: int) -> Budget:
    budget = db.query(Budget).filter(
        Budget.id == budget_id,
        Budget.owner_id == owner_id,
    ).first()
    if not budget:
        raise NotFoundError(BUDGET_NOT_FOUND, "Бюджет не найден", {"budget_id": budget_id})
    return budget


class _BudgetValidator:
    """Общие проверки создания и изменения бюджета"""

    def __init__(self, db: Session):
        self.db = db

    def validate(
        self,
        owner_id: int,
        category_id: int,
        amount: Decimal,
        period: str,
        start_date: date,
        end_date: date,
        exclude_id: int | None = None,
    ) -> None:
        if amount <= 0:
            raise InvalidStateError(INVALID_AMOUNT, "Сумма бюджета должна быть больше нуля", {"amount": amount})
        if period not in BUDGET_PERIODS:
            raise InvalidStateError(
                INVALID_BUDGET_PERIOD,
                f"Период должен быть одним из: {', '.join(BUDGET_PERIODS)}",
                {"period": period},
            )
        if end_date <= start_date:
            raise InvalidStateError(
                INVALID_BUDGET_WINDOW,
                "Дата окончания должна быть позже даты начала",
                {"start_date": start_date, "end_date": end_date},
            )

        category = get_category(self.db, category_id)
        if category.category_type != CATEGORY_TYPE_EXPENSE:
            raise InvalidStateError(
                INVALID_CATEGORY_TYPE,
                "Бюджет можно задать только для статьи расходов",
                {"category_type": category.category_type},
            )

        query = self.db.query(Budget).filter(
            Budget.owner_id == owner_id,
            Budget.category_id == category_id,
        )
        if exclude_id is not None:
            query = query.filter(Budget.id != exclude_id)
        overlapping = next(
            (
                b for b in query.order_by(Budget.start_date)
                if windows_overlap(start_date, end_date, b.start_date, b.end_date)
            ),
            None,
        )
        if overlapping:
            raise ConflictError(
                OVERLAPPING_BUDGET,
                "На эти даты уже есть бюджет по этой статье",
                {
                    "budget_id": overlapping.id,
                    "start_date": overlapping.start_date,
                    "end_date": overlapping.end_date,
                },
            )


class CreateBudgetUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: int,
        category_id: int,
        amount: Decimal,
        period: str,
        start_date: date,
        end_date: date,
    ) -> Budget:
        amount = to_money(amount)
        _BudgetValidator(self.db).validate(owner_id, category_id, amount, period, start_date, end_date)

        budget = Budget(
            owner_id=owner_id,
            category_id=category_id,
            amount=amount,
            period=period,
            start_date=start_date,
            end_date=end_date,
        )
        with atomic(self.db):
            self.db.add(budget)
            self.db.flush()

        logger.info(
            "Budget created: id=%s owner=%s category=%s %s..%s",
            budget.id, owner_id, category_id, start_date, end_date,
        )
        return budget


class UpdateBudgetUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, budget_id: int, **changes) -> Budget:
        budget = _get_owned(self.db, owner_id, budget_id)

        category_id = changes.get("category_id") or budget.category_id
        amount = to_money(changes["amount"]) if changes.get("amount") is not None else to_money(budget.amount)
        period = changes.get("period") or budget.period
        start_date = changes.get("start_date") or budget.start_date
        end_date = changes.get("end_date") or budget.end_date

        _BudgetValidator(self.db).validate(
            owner_id, category_id, amount, period, start_date, end_date, exclude_id=budget.id
        )

        with atomic(self.db):
            budget.category_id = category_id
            budget.amount = amount
            budget.period = period
            budget.start_date = start_date
            budget.end_date = end_date

        logger.info("Budget updated: id=%s owner=%s", budget_id, owner_id)
        return budget


class DeleteBudgetUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, budget_id: int) -> None:
        budget = _get_owned(self.db, owner_id, budget_id)
        with atomic(self.db):
            self.db.delete(budget)
        logger.info("Budget deleted: id=%s owner=%s", budget_id, owner_id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def evaluated_view(db: Session, budget: Budget, category: Category | None = None) -> dict:
    """Бюджет + оценка (spent, remaining, percentage, is_over_budget, status)"""
    return {**budget_view(budget, category), **evaluate(db, budget).as_dict()}


def list_budgets(
    db: Session,
    owner_id: int,
    period: str | None = None,
    active: bool | None = None,
    today: date | None = None,
) -> list[dict]:
    """
    Бюджеты владельца: start desc, имя статьи asc

    Args:
        period: weekly / monthly / yearly
        active: True - только окна, содержащие сегодняшний день
    """
    query = (
        db.query(Budget, Category)
        .join(Category, Budget.category_id == Category.id)
        .filter(Budget.owner_id == owner_id)
    )
    if period:
        query = query.filter(Budget.period == period)
    if active:
        today = today or today_local()
        query = query.filter(Budget.start_date <= today, Budget.end_date >= today)

    rows = query.order_by(Budget.start_date.desc(), Category.name.asc()).all()
    return [evaluated_view(db, budget, category) for budget, category in rows]


def get_budget(db: Session, owner_id: int, budget_id: int) -> dict:
    """Бюджет с оценкой и расходами, попавшими в его окно"""
    budget = _get_owned(db, owner_id, budget_id)
    category = get_category(db, budget.category_id)

    rows = (
        db.query(Transaction, Account)
        .join(Account, Transaction.account_id == Account.id)
        .filter(
            Transaction.owner_id == owner_id,
            Transaction.category_id == budget.category_id,
            Transaction.amount < 0,
            Transaction.date >= budget.start_date,
            Transaction.date <= budget.end_date,
        )
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )

    return {
        "budget": evaluated_view(db, budget, category),
        "transactions": [transaction_view(tx, category, account) for tx, account in rows],
    }
