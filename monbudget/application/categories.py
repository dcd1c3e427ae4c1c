"""
Category use cases - глобальный справочник статей доходов и расходов

Справочник общий для всех пользователей. Статью нельзя удалить, пока на неё
ссылаются операции или бюджеты, и нельзя сменить ей тип, пока она используется.
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from monbudget.application.errors import (
    NotFoundError, ConflictError, InvalidStateError,
    CATEGORY_NOT_FOUND, CATEGORY_ALREADY_EXISTS, CATEGORY_IN_USE, INVALID_CATEGORY_TYPE,
)
from monbudget.application.views import budget_view, category_view
from monbudget.domain.category import CATEGORY_TYPES, DEFAULT_CATEGORIES, DEFAULT_COLOR
from monbudget.domain.periods import month_key, month_start, shift_months
from monbudget.infrastructure.db.models import Budget, Category, Transaction
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.clock import today_local
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)

STATS_MONTHS = 6


def get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError(CATEGORY_NOT_FOUND, "Статья не найдена", {"category_id": category_id})
    return category


def list_categories(db: Session, category_type: str | None = None) -> list[Category]:
    query = db.query(Category)
    if category_type:
        query = query.filter(Category.category_type == category_type)
    return query.order_by(Category.name).all()


def _validate_type(category_type: str) -> None:
    if category_type not in CATEGORY_TYPES:
        raise InvalidStateError(
            INVALID_CATEGORY_TYPE,
            f"Тип статьи должен быть одним из: {', '.join(CATEGORY_TYPES)}",
            {"category_type": category_type},
        )


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError(CATEGORY_ALREADY_EXISTS, "Статья с таким названием уже существует", {"name": name})


def _usage_counts(db: Session, category_id: int) -> tuple[int, int]:
    tx_count = db.query(func.count(Transaction.id)).filter(
        Transaction.category_id == category_id
    ).scalar() or 0
    budget_count = db.query(func.count(Budget.id)).filter(
        Budget.category_id == category_id
    ).scalar() or 0
    return tx_count, budget_count


class EnsureDefaultCategoriesUseCase:
    """
    Use case: заполнить базовый справочник статей (идемпотентно)

    Существующие статьи (по имени) не трогаются.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self) -> int:
        existing = {name for (name,) in self.db.query(Category.name).all()}
        created = 0
        with atomic(self.db):
            for name, category_type, color in DEFAULT_CATEGORIES:
                if name in existing:
                    continue
                self.db.add(Category(name=name, category_type=category_type, color=color))
                created += 1

        if created:
            logger.info("Default categories seeded: %s created", created)
        return created


class CreateCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, name: str, category_type: str, color: str = DEFAULT_COLOR) -> Category:
        name = name.strip()
        _validate_type(category_type)
        _ensure_unique_name(self.db, name)

        category = Category(name=name, category_type=category_type, color=color or DEFAULT_COLOR)
        with atomic(self.db):
            self.db.add(category)
            self.db.flush()

        logger.info("Category created: id=%s name=%r type=%s", category.id, name, category_type)
        return category


class UpdateCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int, **changes) -> Category:
        category = get_category(self.db, category_id)

        new_name = changes.get("name")
        if new_name is not None:
            new_name = new_name.strip()
            if new_name != category.name:
                _ensure_unique_name(self.db, new_name, exclude_id=category.id)

        new_type = changes.get("category_type")
        if new_type is not None and new_type != category.category_type:
            _validate_type(new_type)
            tx_count, budget_count = _usage_counts(self.db, category.id)
            if tx_count or budget_count:
                # Знак сумм существующих операций должен совпадать с типом статьи
                raise ConflictError(
                    CATEGORY_IN_USE,
                    "Нельзя сменить тип статьи, которая используется",
                    {"transaction_count": tx_count, "budget_count": budget_count},
                )

        with atomic(self.db):
            if new_name is not None:
                category.name = new_name
            if new_type is not None:
                category.category_type = new_type
            if changes.get("color") is not None:
                category.color = changes["color"]

        logger.info("Category updated: id=%s", category_id)
        return category


class DeleteCategoryUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, category_id: int) -> None:
        category = get_category(self.db, category_id)

        tx_count, budget_count = _usage_counts(self.db, category.id)
        if tx_count or budget_count:
            raise ConflictError(
                CATEGORY_IN_USE,
                "Статья используется в операциях или бюджетах",
                {"transaction_count": tx_count, "budget_count": budget_count},
            )

        with atomic(self.db):
            self.db.delete(category)

        logger.info("Category deleted: id=%s", category_id)


def get_category_stats(
    db: Session,
    owner_id: int,
    category_id: int,
    today: date | None = None,
) -> dict:
    """
    Статистика пользователя по статье

    Returns:
        category, stats {count, total, average, first_date, last_date},
        monthly (последние 6 месяцев, включая пустые), active_budget
    """
    today = today or today_local()
    category = get_category(db, category_id)

    base = db.query(Transaction).filter(
        Transaction.owner_id == owner_id,
        Transaction.category_id == category.id,
    )

    count, total, first_date, last_date = base.with_entities(
        func.count(Transaction.id),
        func.sum(Transaction.amount),
        func.min(Transaction.date),
        func.max(Transaction.date),
    ).one()
    total = to_money(total)

    since = shift_months(month_start(today), -(STATS_MONTHS - 1))
    monthly = {month_key(shift_months(since, i)): Decimal("0") for i in range(STATS_MONTHS)}
    for tx_date, amount in base.filter(Transaction.date >= since).with_entities(
        Transaction.date, Transaction.amount
    ):
        key = month_key(tx_date)
        if key in monthly:
            monthly[key] += to_money(amount)

    active_budget = db.query(Budget).filter(
        Budget.owner_id == owner_id,
        Budget.category_id == category.id,
        Budget.start_date <= today,
        Budget.end_date >= today,
    ).order_by(Budget.start_date.desc()).first()

    return {
        "category": category_view(category),
        "stats": {
            "count": count or 0,
            "total": total,
            "average": to_money(total / count) if count else Decimal("0.00"),
            "first_date": first_date,
            "last_date": last_date,
        },
        "monthly": [{"month": key, "total": value} for key, value in monthly.items()],
        "active_budget": budget_view(active_budget) if active_budget else None,
    }
