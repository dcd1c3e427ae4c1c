"""
Analytics Aggregator - read-only rollups over the transaction set.

Ничего не кэшируется: каждый отчёт пересчитывается из transactions.
Окна периодов - относительные (см. domain.periods):
    week -7 дней, month -1 месяц, quarter -3 месяца, year -1 год, all без фильтра.

Группировки по месяцу и дню недели делаются в Python (одинаково для SQLite и PostgreSQL).
"""
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from monbudget.application.budgets import list_budgets
from monbudget.application.goals import list_goals
from monbudget.domain.aggregates import Totals
from monbudget.domain.periods import month_key, normalize_period, shift_months, window_start
from monbudget.infrastructure.db.models import Account, Category, Transaction
from monbudget.utils.clock import now_local, today_local
from monbudget.utils.money import format_money, to_money

TREND_MONTHS = 6
INSIGHT_TREND_MONTHS = 12
INSIGHT_WINDOW_MONTHS = 3
TOP_CATEGORIES_LIMIT = 5
PREDICTION_MONTHS = 3
GOAL_DUE_SOON_DAYS = 30

WEEKDAY_NAMES = ["понедельник", "вторник", "среда", "четверг", "пятница", "суббота", "воскресенье"]

_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


def _percent(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return round(float(part / whole * 100), 2)


class AnalyticsService:
    """
    Отчёты для /analytics и /dashboard

    today/now можно передать явно (тесты, пересчёт "на дату").
    """

    def __init__(self, db: Session):
        self.db = db

    def _rows(self, owner_id: int, since: date | None):
        query = (
            self.db.query(Transaction.date, Transaction.amount, Category, Account)
            .join(Category, Transaction.category_id == Category.id)
            .join(Account, Transaction.account_id == Account.id)
            .filter(Transaction.owner_id == owner_id)
        )
        if since is not None:
            query = query.filter(Transaction.date >= since)
        return query.all()

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self, owner_id: int, period: str | None = "month", today: date | None = None) -> dict:
        """
        Итоги периода, разбивки по статьям и счетам, помесячный тренд за 6 месяцев
        """
        today = today or today_local()
        period = normalize_period(period)
        since = window_start(period, today)

        overall = Totals()
        expense_groups: dict[int, Totals] = defaultdict(Totals)
        income_groups: dict[int, Totals] = defaultdict(Totals)
        account_groups: dict[int, Totals] = defaultdict(Totals)
        categories: dict[int, Category] = {}
        accounts: dict[int, Account] = {}

        for _, amount, category, account in self._rows(owner_id, since):
            amount = to_money(amount)
            overall.add(amount)
            categories[category.id] = category
            accounts[account.id] = account
            if amount < 0:
                expense_groups[category.id].add(amount)
            else:
                income_groups[category.id].add(amount)
            account_groups[account.id].add(amount)

        def by_category(groups: dict[int, Totals], expenses: bool) -> list[dict]:
            grand_total = overall.expenses if expenses else overall.income
            items = []
            for category_id, totals in groups.items():
                total = totals.expenses if expenses else totals.income
                items.append({
                    "category": categories[category_id].name,
                    "color": categories[category_id].color,
                    "transaction_count": totals.count,
                    "total_amount": total,
                    "avg_amount": totals.avg_expense if expenses else totals.avg_income,
                    "percentage": _percent(total, grand_total),
                })
            items.sort(key=lambda it: it["total_amount"], reverse=True)
            return items

        account_breakdown = [
            {
                "account": accounts[account_id].name,
                "account_type": accounts[account_id].account_type,
                "bank": accounts[account_id].bank,
                "transaction_count": totals.count,
                "total_income": totals.income,
                "total_expenses": totals.expenses,
                "net": totals.net,
            }
            for account_id, totals in account_groups.items()
        ]
        account_breakdown.sort(key=lambda it: it["total_income"] + it["total_expenses"], reverse=True)

        return {
            "period": period,
            "start_date": since,
            "summary": {
                "total_transactions": overall.count,
                "total_income": overall.income,
                "total_expenses": overall.expenses,
                "avg_income": overall.avg_income,
                "avg_expense": overall.avg_expense,
                "net_amount": overall.net,
                "savings_rate": overall.savings_rate,
            },
            "breakdown": {
                "expenses_by_category": by_category(expense_groups, expenses=True),
                "income_by_category": by_category(income_groups, expenses=False),
                "account_breakdown": account_breakdown,
            },
            "trends": {"monthly": self.monthly_trend(owner_id, today)},
        }

    def monthly_trend(self, owner_id: int, today: date | None = None, months: int = TREND_MONTHS) -> list[dict]:
        """Помесячно за последние N месяцев (только месяцы с операциями), по возрастанию"""
        today = today or today_local()
        since = shift_months(today, -months)

        buckets: dict[str, Totals] = defaultdict(Totals)
        for tx_date, amount, _, _ in self._rows(owner_id, since):
            buckets[month_key(tx_date)].add(to_money(amount))

        return [
            {
                "month": key,
                "transaction_count": totals.count,
                "income": totals.income,
                "expenses": totals.expenses,
                "net": totals.net,
            }
            for key, totals in sorted(buckets.items())
        ]

    # ------------------------------------------------------------------
    # Budgets / goals
    # ------------------------------------------------------------------

    def budgets(self, owner_id: int, today: date | None = None) -> dict:
        """Активные бюджеты с оценкой + сводка"""
        budgets = list_budgets(self.db, owner_id, active=True, today=today or today_local())

        total_budgeted = sum((to_money(b["amount"]) for b in budgets), _ZERO)
        total_spent = sum((b["spent"] for b in budgets), _ZERO)

        return {
            "budgets": budgets,
            "summary": {
                "total_budgets": len(budgets),
                "total_budgeted": total_budgeted,
                "total_spent": total_spent,
                "total_remaining": max(_ZERO, total_budgeted - total_spent),
                "over_budget_count": sum(1 for b in budgets if b["is_over_budget"]),
                "average_usage": _percent(total_spent, total_budgeted),
            },
        }

    def goals(self, owner_id: int, now: datetime | None = None) -> dict:
        """Цели с прогрессом + сводка"""
        goals = list_goals(self.db, owner_id, now=now or now_local())

        total = len(goals)
        completed = sum(1 for g in goals if g["is_completed"])
        total_target = sum((to_money(g["target_amount"]) for g in goals), _ZERO)
        total_current = sum((to_money(g["current_amount"]) for g in goals), _ZERO)

        return {
            "goals": goals,
            "summary": {
                "total_goals": total,
                "completed_goals": completed,
                "active_goals": total - completed,
                "completion_rate": round(completed / total * 100, 2) if total else 0.0,
                "total_target_amount": total_target,
                "total_current_amount": total_current,
                "total_remaining": max(_ZERO, total_target - total_current),
                "overall_progress": min(100.0, _percent(total_current, total_target)),
            },
        }

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def insights(self, owner_id: int, today: date | None = None, now: datetime | None = None) -> dict:
        """
        Тренды расходов, топ статей, расходы по дням недели, прогноз и подсказки

        Прогноз расходов следующего месяца - среднее последних 3 месяцев с расходами
        (при наличии хотя бы 3 таких месяцев).
        """
        today = today or today_local()
        now = now or now_local()

        monthly: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        for tx_date, amount, _, _ in self._rows(owner_id, shift_months(today, -INSIGHT_TREND_MONTHS)):
            if amount < 0:
                monthly[month_key(tx_date)] += -to_money(amount)
        spending_trends = [
            {"month": key, "total_expenses": value} for key, value in sorted(monthly.items())
        ]

        by_category: dict[int, Totals] = defaultdict(Totals)
        by_weekday: dict[int, Totals] = defaultdict(Totals)
        names: dict[int, str] = {}
        for tx_date, amount, category, _ in self._rows(owner_id, shift_months(today, -INSIGHT_WINDOW_MONTHS)):
            amount = to_money(amount)
            if amount >= 0:
                continue
            names[category.id] = category.name
            by_category[category.id].add(amount)
            by_weekday[tx_date.weekday()].add(amount)

        top_categories = sorted(
            (
                {
                    "category": names[category_id],
                    "total_amount": totals.expenses,
                    "transaction_count": totals.count,
                    "avg_amount": totals.avg_expense,
                }
                for category_id, totals in by_category.items()
            ),
            key=lambda it: it["total_amount"],
            reverse=True,
        )[:TOP_CATEGORIES_LIMIT]

        weekday_spending = [
            {
                "day_of_week": WEEKDAY_NAMES[day],
                "day_number": day,
                "total_amount": totals.expenses,
                "transaction_count": totals.count,
            }
            for day, totals in sorted(by_weekday.items())
        ]

        prediction = None
        if len(spending_trends) >= PREDICTION_MONTHS:
            recent = spending_trends[-PREDICTION_MONTHS:]
            total = sum((m["total_expenses"] for m in recent), _ZERO)
            prediction = (total / PREDICTION_MONTHS).quantize(_CENT, rounding=ROUND_HALF_UP)

        return {
            "trends": {
                "monthly": spending_trends,
                "by_category": top_categories,
                "by_day_of_week": weekday_spending,
            },
            "predictions": {"next_month_expenses": prediction},
            "insights": self._insight_messages(owner_id, today, now),
        }

    def _insight_messages(self, owner_id: int, today: date, now: datetime) -> list[dict]:
        messages = []

        over_budget = [
            b for b in list_budgets(self.db, owner_id, active=True, today=today)
            if b["is_over_budget"]
        ]
        if over_budget:
            overspent = sum((b["spent"] - to_money(b["amount"]) for b in over_budget), _ZERO)
            messages.append({
                "type": "warning",
                "title": "Бюджеты превышены",
                "message": (
                    f"Превышено бюджетов в текущем периоде: {len(over_budget)} "
                    f"(перерасход {format_money(overspent)})."
                ),
                "action": "Пересмотрите бюджеты или сократите расходы.",
            })

        due_until = today + timedelta(days=GOAL_DUE_SOON_DAYS)
        due_soon = [
            g for g in list_goals(self.db, owner_id, now=now)
            if g["deadline"] is not None
            and today <= g["deadline"] <= due_until
            and not g["is_completed"]
        ]
        if due_soon:
            messages.append({
                "type": "info",
                "title": "Скоро срок по целям",
                "message": f"Целей со сроком в ближайшие {GOAL_DUE_SOON_DAYS} дней: {len(due_soon)}.",
                "action": "Увеличьте взносы, чтобы успеть к сроку.",
            })

        return messages
