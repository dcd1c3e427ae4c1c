"""
Transaction Engine

Создание / изменение / удаление / дублирование операций. Каждая запись
выполняется в одном atomic-блоке: проверки, блокировка счёта,
запись строки и AccountLedger.apply_delta коммитятся вместе.

Проверки (в этом порядке):
    1. счёт принадлежит владельцу           -> ACCOUNT_NOT_FOUND
    2. статья существует                    -> CATEGORY_NOT_FOUND
    3. знак суммы совпадает с типом статьи  -> CATEGORY_TYPE_MISMATCH
       (нулевая сумма                       -> INVALID_AMOUNT)
    4. некредитный счёт не уходит в минус   -> INSUFFICIENT_FUNDS
"""
import logging
import math
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from monbudget.application.accounts import AccountLedger
from monbudget.application.categories import get_category
from monbudget.application.errors import (
    NotFoundError, InvalidStateError,
    TRANSACTION_NOT_FOUND, CATEGORY_TYPE_MISMATCH, INVALID_AMOUNT,
)
from monbudget.application.views import transaction_view
from monbudget.config import get_settings
from monbudget.domain.aggregates import Totals
from monbudget.domain.category import category_type_for_amount, sign_matches
from monbudget.domain.periods import month_key, normalize_period, window_start
from monbudget.domain.transaction import (
    TYPE_INCOME, TYPE_EXPENSE,
    SIMILAR_RANK_SAME_DESCRIPTION, SIMILAR_RANK_SAME_CATEGORY_AMOUNT, SIMILAR_RANK_SAME_ACCOUNT,
    GroupBy, SortField, SortOrder, TransactionFilter, TransactionSort,
    amount_tolerance, copy_description,
)
from monbudget.infrastructure.db.models import Account, Category, Transaction
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.clock import today_local
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 255
SIMILAR_DEFAULT_LIMIT = 10


def _get_owned(db: Session, owner_id: int, transaction_id: int) -> Transaction:
    tx = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.owner_id == owner_id,
    ).first()
    if not tx:
        raise NotFoundError(
            TRANSACTION_NOT_FOUND, "Операция не найдена", {"transaction_id": transaction_id}
        )
    return tx


def _check_sign(category: Category, amount: Decimal) -> None:
    if amount == 0:
        raise InvalidStateError(INVALID_AMOUNT, "Сумма операции не может быть нулевой", {"amount": amount})
    if not sign_matches(category.category_type, amount):
        raise InvalidStateError(
            CATEGORY_TYPE_MISMATCH,
            "Знак суммы не соответствует типу статьи",
            {
                "category_type": category.category_type,
                "expected_type": category_type_for_amount(amount),
                "amount": amount,
            },
        )


class CreateTransactionUseCase:
    """
    Use case: Создать операцию и применить её к балансу счёта
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: int,
        account_id: int,
        category_id: int,
        amount: Decimal,
        tx_date: date | None = None,
        description: str = "",
        notes: str | None = None,
    ) -> Transaction:
        amount = to_money(amount)
        ledger = AccountLedger(self.db)

        with atomic(self.db):
            account = ledger.lock_for_update(owner_id, account_id)
            category = get_category(self.db, category_id)
            _check_sign(category, amount)
            ledger.ensure_funds(account, amount)

            tx = Transaction(
                owner_id=owner_id,
                account_id=account.id,
                category_id=category.id,
                description=description.strip()[:DESCRIPTION_MAX_LENGTH],
                amount=amount,
                date=tx_date or today_local(),
                notes=notes,
            )
            self.db.add(tx)
            self.db.flush()
            ledger.apply_delta(account.id, amount)

        logger.info(
            "Transaction created: id=%s owner=%s account=%s amount=%s",
            tx.id, owner_id, account_id, amount,
        )
        return tx


class UpdateTransactionUseCase:
    """
    Use case: Изменить операцию с пересчётом балансов

    Тот же счёт: применяется (new - old).
    Другой счёт: old снимается со старого счёта, new применяется к новому.
    Каждое уменьшение баланса некредитного счёта проверяется на достаточность средств.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, transaction_id: int, **changes) -> Transaction:
        ledger = AccountLedger(self.db)

        with atomic(self.db):
            tx = _get_owned(self.db, owner_id, transaction_id)

            old_account_id = tx.account_id
            old_amount = to_money(tx.amount)
            new_account_id = changes.get("account_id") or old_account_id
            new_category_id = changes.get("category_id") or tx.category_id
            new_amount = to_money(changes["amount"]) if changes.get("amount") is not None else old_amount

            # Счета блокируются по возрастанию id
            locked = {
                account_id: ledger.lock_for_update(owner_id, account_id)
                for account_id in sorted({old_account_id, new_account_id})
            }
            category = get_category(self.db, new_category_id)
            _check_sign(category, new_amount)

            if new_account_id == old_account_id:
                delta = new_amount - old_amount
                ledger.ensure_funds(locked[old_account_id], delta)
                ledger.apply_delta(old_account_id, delta)
            else:
                ledger.ensure_funds(locked[old_account_id], -old_amount)
                ledger.ensure_funds(locked[new_account_id], new_amount)
                ledger.apply_delta(old_account_id, -old_amount)
                ledger.apply_delta(new_account_id, new_amount)

            tx.account_id = new_account_id
            tx.category_id = category.id
            tx.amount = new_amount
            if changes.get("description") is not None:
                tx.description = changes["description"].strip()[:DESCRIPTION_MAX_LENGTH]
            if changes.get("tx_date") is not None:
                tx.date = changes["tx_date"]
            if "notes" in changes:
                tx.notes = changes["notes"]
            self.db.flush()

        logger.info(
            "Transaction updated: id=%s owner=%s amount %s -> %s, account %s -> %s",
            transaction_id, owner_id, old_amount, new_amount, old_account_id, new_account_id,
        )
        return tx


class DeleteTransactionUseCase:
    """
    Use case: Удалить операцию и отменить её влияние на баланс

    Повторное удаление -> TRANSACTION_NOT_FOUND, баланс не меняется.
    Отмена дохода на некредитном счёте проверяется на достаточность средств.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, transaction_id: int) -> None:
        ledger = AccountLedger(self.db)

        with atomic(self.db):
            tx = _get_owned(self.db, owner_id, transaction_id)
            amount = to_money(tx.amount)
            account = ledger.lock_for_update(owner_id, tx.account_id)
            ledger.ensure_funds(account, -amount)
            ledger.apply_delta(tx.account_id, -amount)
            self.db.delete(tx)

        logger.info("Transaction deleted: id=%s owner=%s amount=%s", transaction_id, owner_id, amount)


class DuplicateTransactionUseCase:
    """
    Use case: Копия операции (новая независимая строка)

    Дата по умолчанию - сегодня, описание - "<оригинал> (copy)".
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: int,
        transaction_id: int,
        new_date: date | None = None,
        new_description: str | None = None,
    ) -> Transaction:
        original = _get_owned(self.db, owner_id, transaction_id)

        return CreateTransactionUseCase(self.db).execute(
            owner_id=owner_id,
            account_id=original.account_id,
            category_id=original.category_id,
            amount=original.amount,
            tx_date=new_date or today_local(),
            description=new_description or copy_description(original.description),
            notes=original.notes,
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _joined(db: Session, owner_id: int):
    return (
        db.query(Transaction, Category, Account)
        .join(Category, Transaction.category_id == Category.id)
        .join(Account, Transaction.account_id == Account.id)
        .filter(Transaction.owner_id == owner_id)
    )


def get_transaction(db: Session, owner_id: int, transaction_id: int) -> dict:
    row = _joined(db, owner_id).filter(Transaction.id == transaction_id).first()
    if not row:
        raise NotFoundError(
            TRANSACTION_NOT_FOUND, "Операция не найдена", {"transaction_id": transaction_id}
        )
    tx, category, account = row
    return transaction_view(tx, category, account)


def find_similar(
    db: Session,
    owner_id: int,
    transaction_id: int,
    limit: int = SIMILAR_DEFAULT_LIMIT,
) -> list[dict]:
    """
    Похожие операции владельца:
        ранг 1 - то же описание
        ранг 2 - та же статья и |amount - ref| < |ref| * 10%
        ранг 3 - тот же счёт
    Порядок: ранг, затем дата desc.
    """
    ref = _get_owned(db, owner_id, transaction_id)
    ref_amount = to_money(ref.amount)
    tolerance = amount_tolerance(ref_amount)

    candidates = _joined(db, owner_id).filter(
        Transaction.id != ref.id,
        or_(
            Transaction.description == ref.description,
            Transaction.category_id == ref.category_id,
            Transaction.account_id == ref.account_id,
        ),
    ).all()

    ranked = []
    for tx, category, account in candidates:
        if tx.description == ref.description:
            rank = SIMILAR_RANK_SAME_DESCRIPTION
        elif tx.category_id == ref.category_id and abs(to_money(tx.amount) - ref_amount) < tolerance:
            rank = SIMILAR_RANK_SAME_CATEGORY_AMOUNT
        elif tx.account_id == ref.account_id:
            rank = SIMILAR_RANK_SAME_ACCOUNT
        else:
            continue
        item = transaction_view(tx, category, account)
        item["similarity_rank"] = rank
        ranked.append(item)

    ranked.sort(key=lambda it: (it["date"], it["id"]), reverse=True)
    ranked.sort(key=lambda it: it["similarity_rank"])
    return ranked[:max(1, limit)]


_SORT_COLUMNS = {
    SortField.DATE: Transaction.date,
    SortField.AMOUNT: Transaction.amount,
    SortField.DESCRIPTION: Transaction.description,
    SortField.CATEGORY: Category.name,
    SortField.ACCOUNT: Account.name,
}


def _escape_like(value: str) -> str:
    """Поиск по подстроке: % и _ ищутся буквально"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _apply_filter(query, flt: TransactionFilter):
    if flt.category_name:
        query = query.filter(Category.name == flt.category_name)
    if flt.account_id:
        query = query.filter(Transaction.account_id == flt.account_id)
    if flt.type == TYPE_INCOME:
        query = query.filter(Transaction.amount > 0)
    elif flt.type == TYPE_EXPENSE:
        query = query.filter(Transaction.amount < 0)
    if flt.search:
        pattern = f"%{_escape_like(flt.search.strip())}%"
        query = query.filter(or_(
            Transaction.description.ilike(pattern, escape="\\"),
            Transaction.notes.ilike(pattern, escape="\\"),
        ))
    if flt.start_date:
        query = query.filter(Transaction.date >= flt.start_date)
    if flt.end_date:
        query = query.filter(Transaction.date <= flt.end_date)
    return query


def list_transactions(
    db: Session,
    owner_id: int,
    flt: TransactionFilter | None = None,
    sort: TransactionSort | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> dict:
    """
    Лента операций: фильтр + сортировка + пагинация + статистика по всей выборке

    Returns:
        {"transactions": [...], "pagination": {...}, "stats": {...}}
    """
    settings = get_settings()
    flt = flt or TransactionFilter()
    sort = sort or TransactionSort()
    limit = limit or settings.TRANSACTIONS_DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, settings.TRANSACTIONS_MAX_PAGE_SIZE))
    offset = max(0, offset)

    query = _apply_filter(_joined(db, owner_id), flt)

    count, income, expenses, income_count, expense_count = query.with_entities(
        func.count(Transaction.id),
        func.sum(case((Transaction.amount > 0, Transaction.amount), else_=0)),
        func.sum(case((Transaction.amount < 0, -Transaction.amount), else_=0)),
        func.sum(case((Transaction.amount > 0, 1), else_=0)),
        func.sum(case((Transaction.amount < 0, 1), else_=0)),
    ).one()
    total = count or 0
    stats = Totals(
        count=total,
        income=to_money(income),
        expenses=to_money(expenses),
        income_count=int(income_count or 0),
        expense_count=int(expense_count or 0),
    )

    column = _SORT_COLUMNS[sort.field]
    order_by = [column.asc() if sort.order == SortOrder.ASC else column.desc()]
    if sort.field != SortField.DATE:
        order_by.append(Transaction.date.desc())
    order_by.append(Transaction.id.desc())

    rows = query.order_by(*order_by).offset(offset).limit(limit).all()

    return {
        "transactions": [transaction_view(tx, category, account) for tx, category, account in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(rows) < total,
            "page": offset // limit + 1,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
        "stats": {
            "count": total,
            "total_income": stats.income,
            "total_expenses": stats.expenses,
            "avg_income": stats.avg_income,
            "avg_expense": stats.avg_expense,
            "net_amount": stats.net,
        },
    }


def _parse_group_by(group_by: str | None) -> GroupBy:
    try:
        return GroupBy(group_by) if group_by else GroupBy.CATEGORY
    except ValueError:
        return GroupBy.CATEGORY


def period_stats(
    db: Session,
    owner_id: int,
    period: str | None = "month",
    group_by: str | None = "category",
    today: date | None = None,
) -> dict:
    """
    Статистика за период с группировкой (category / account / month / day)

    Группы упорядочены по расходам desc, затем по доходам desc.
    """
    today = today or today_local()
    period = normalize_period(period)
    grouping = _parse_group_by(group_by)
    start = window_start(period, today)

    query = (
        db.query(Transaction.date, Transaction.amount, Category.name, Account.name)
        .join(Category, Transaction.category_id == Category.id)
        .join(Account, Transaction.account_id == Account.id)
        .filter(Transaction.owner_id == owner_id)
    )
    if start is not None:
        query = query.filter(Transaction.date >= start)

    groups: dict[str, Totals] = defaultdict(Totals)
    overall = Totals()
    for tx_date, amount, category_name, account_name in query:
        if grouping == GroupBy.CATEGORY:
            key = category_name
        elif grouping == GroupBy.ACCOUNT:
            key = account_name
        elif grouping == GroupBy.MONTH:
            key = month_key(tx_date)
        else:
            key = tx_date.isoformat()
        amount = to_money(amount)
        groups[key].add(amount)
        overall.add(amount)

    items = [{"group": key, **totals.as_dict()} for key, totals in groups.items()]
    items.sort(key=lambda it: (it["expenses"], it["income"]), reverse=True)

    return {
        "period": period,
        "group_by": grouping.value,
        "start_date": start,
        "groups": items,
        "totals": overall.as_dict(),
    }
