"""
Dashboard - aggregated home view.

Pure read-layer: no mutations.
Blocks:
  1. User + accounts
  2. Recent transactions (10)
  3. Active budgets with spent
  4. Goals with progress
  5. Stats (total balance, month income/expenses, savings)
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from monbudget.application.budgets import list_budgets
from monbudget.application.goals import list_goals
from monbudget.application.views import account_view, transaction_view, user_view
from monbudget.domain.account import ACCOUNT_TYPE_SAVINGS
from monbudget.domain.periods import PERIOD_MONTH, PERIOD_WEEK, PERIOD_YEAR, month_start
from monbudget.infrastructure.db.models import Account, Category, Goal, Transaction, User
from monbudget.utils.clock import now_local, today_local
from monbudget.utils.money import to_money

RECENT_LIMIT = 10

_ZERO = Decimal("0.00")


def stats_window_start(period: str | None, today: date) -> date:
    """
    Окно быстрой статистики (не совпадает с окнами аналитики):
        week  -> -7 дней
        month -> 1-е число месяца
        year  -> 1 января
    """
    if period == PERIOD_WEEK:
        return today - timedelta(days=7)
    if period == PERIOD_YEAR:
        return today.replace(month=1, day=1)
    return month_start(today)


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def _income_expenses(self, owner_id: int, since: date) -> tuple[int, Decimal, Decimal]:
        count, income, expenses = self.db.query(
            func.count(Transaction.id),
            func.sum(case((Transaction.amount > 0, Transaction.amount), else_=0)),
            func.sum(case((Transaction.amount < 0, -Transaction.amount), else_=0)),
        ).filter(
            Transaction.owner_id == owner_id,
            Transaction.date >= since,
        ).one()
        return count or 0, to_money(income), to_money(expenses)

    def get_summary(
        self,
        user: User,
        today: date | None = None,
        now: datetime | None = None,
    ) -> dict:
        today = today or today_local()
        now = now or now_local()

        accounts = self.db.query(Account).filter(
            Account.owner_id == user.id
        ).order_by(Account.name).all()

        recent = (
            self.db.query(Transaction, Category, Account)
            .join(Category, Transaction.category_id == Category.id)
            .join(Account, Transaction.account_id == Account.id)
            .filter(Transaction.owner_id == user.id)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
            .limit(RECENT_LIMIT)
            .all()
        )

        budgets = list_budgets(self.db, user.id, active=True, today=today)
        budgets.sort(key=lambda b: b["category_name"])

        _, month_income, month_expenses = self._income_expenses(user.id, month_start(today))

        return {
            "user": user_view(user),
            "accounts": [account_view(a) for a in accounts],
            "recent_transactions": [transaction_view(tx, c, a) for tx, c, a in recent],
            "budgets": budgets,
            "goals": list_goals(self.db, user.id, now=now),
            "stats": {
                "total_balance": sum((to_money(a.balance) for a in accounts), _ZERO),
                "monthly_income": month_income,
                "monthly_expenses": month_expenses,
                "savings": sum(
                    (to_money(a.balance) for a in accounts if a.account_type == ACCOUNT_TYPE_SAVINGS),
                    _ZERO,
                ),
            },
        }

    def get_stats(self, owner_id: int, period: str | None = PERIOD_MONTH, today: date | None = None) -> dict:
        """Быстрая статистика: week / month / year (неизвестный период -> month)"""
        today = today or today_local()
        if period not in (PERIOD_WEEK, PERIOD_MONTH, PERIOD_YEAR):
            period = PERIOD_MONTH
        since = stats_window_start(period, today)

        count, income, expenses = self._income_expenses(owner_id, since)

        total_balance = self.db.query(func.sum(Account.balance)).filter(
            Account.owner_id == owner_id
        ).scalar()

        completed_goals = self.db.query(func.count(Goal.id)).filter(
            Goal.owner_id == owner_id,
            Goal.current_amount >= Goal.target_amount,
        ).scalar() or 0
        total_goals = self.db.query(func.count(Goal.id)).filter(
            Goal.owner_id == owner_id
        ).scalar() or 0

        return {
            "period": period,
            "start_date": since,
            "transaction_count": count,
            "total_income": income,
            "total_expenses": expenses,
            "net_amount": income - expenses,
            "total_balance": to_money(total_balance),
            "active_goals": total_goals - completed_goals,
            "completed_goals": completed_goals,
        }
