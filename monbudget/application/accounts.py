"""
Account Ledger

Текущий баланс счёта - бегущая сумма: balance = initial_balance + SUM(amount).
Меняется только через AccountLedger.apply_delta атомарным
UPDATE accounts SET balance = balance + :delta.

Use cases:
    CreateAccountUseCase, UpdateAccountUseCase, DeleteAccountUseCase
Queries:
    list_accounts, get_account, get_balance_history
"""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from monbudget.application.errors import (
    NotFoundError, ConflictError, InvalidStateError,
    ACCOUNT_NOT_FOUND, ACCOUNT_NAME_EXISTS, ACCOUNT_HAS_TRANSACTIONS,
    NEGATIVE_BALANCE, INSUFFICIENT_FUNDS, INVALID_ACCOUNT_TYPE,
)
from monbudget.application.views import account_view, transaction_view
from monbudget.domain.account import ACCOUNT_TYPES, allows_negative_balance, check_funds
from monbudget.domain.periods import normalize_period, window_start
from monbudget.infrastructure.db.models import Account, Category, Transaction
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.clock import today_local
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 10


class AccountLedger:
    """
    Единственная точка записи баланса счёта.

    Вызывающий код отвечает за транзакцию БД (atomic): lock_for_update,
    ensure_funds и apply_delta должны выполняться внутри одного блока.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, owner_id: int, account_id: int) -> Account:
        account = self.db.query(Account).filter(
            Account.id == account_id,
            Account.owner_id == owner_id,
        ).first()
        if not account:
            raise NotFoundError(ACCOUNT_NOT_FOUND, "Счёт не найден", {"account_id": account_id})
        return account

    def lock_for_update(self, owner_id: int, account_id: int) -> Account:
        """SELECT ... FOR UPDATE: сериализует проверку средств и изменение баланса"""
        account = (
            self.db.query(Account)
            .filter(Account.id == account_id, Account.owner_id == owner_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not account:
            raise NotFoundError(ACCOUNT_NOT_FOUND, "Счёт не найден", {"account_id": account_id})
        return account

    def get_balance(self, owner_id: int, account_id: int) -> Decimal:
        return to_money(self.get(owner_id, account_id).balance)

    def ensure_funds(self, account: Account, delta: Decimal) -> None:
        """
        Raises:
            InvalidStateError(INSUFFICIENT_FUNDS): некредитный счёт ушёл бы в минус
        """
        current = to_money(account.balance)
        ok, resulting = check_funds(account.account_type, current, delta)
        if not ok:
            raise InvalidStateError(
                INSUFFICIENT_FUNDS,
                "Недостаточно средств на счёте",
                {
                    "account_id": account.id,
                    "current_balance": current,
                    "transaction_amount": delta,
                    "resulting_balance": resulting,
                },
            )

    def apply_delta(self, account_id: int, delta: Decimal) -> None:
        """Атомарный инкремент баланса (без read-modify-write в Python)"""
        if delta == 0:
            return
        self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + delta, updated_at=func.now())
            .execution_options(synchronize_session="fetch")
        )


class CreateAccountUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: int,
        name: str,
        bank: str,
        account_type: str,
        balance: Decimal = Decimal("0"),
    ) -> Account:
        name = name.strip()
        if account_type not in ACCOUNT_TYPES:
            raise InvalidStateError(
                INVALID_ACCOUNT_TYPE,
                f"Неизвестный тип счёта: {account_type}",
                {"allowed": list(ACCOUNT_TYPES)},
            )
        balance = to_money(balance)
        if balance < 0 and not allows_negative_balance(account_type):
            raise InvalidStateError(
                NEGATIVE_BALANCE,
                "Только кредитный счёт может иметь отрицательный баланс",
                {"balance": balance},
            )
        _ensure_unique_name(self.db, owner_id, name)

        account = Account(
            owner_id=owner_id,
            name=name,
            bank=bank.strip(),
            account_type=account_type,
            balance=balance,
            initial_balance=balance,
        )
        with atomic(self.db):
            self.db.add(account)
            self.db.flush()

        logger.info("Account created: id=%s owner=%s type=%s", account.id, owner_id, account_type)
        return account


class UpdateAccountUseCase:
    """Переименование / смена банка / смена типа. Баланс здесь не меняется."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, account_id: int, **changes) -> Account:
        ledger = AccountLedger(self.db)
        with atomic(self.db):
            account = ledger.lock_for_update(owner_id, account_id)

            if changes.get("name") is not None:
                name = changes["name"].strip()
                if name != account.name:
                    _ensure_unique_name(self.db, owner_id, name, exclude_id=account.id)
                    account.name = name
            if changes.get("bank") is not None:
                account.bank = changes["bank"].strip()
            if changes.get("account_type") is not None:
                new_type = changes["account_type"]
                if new_type not in ACCOUNT_TYPES:
                    raise InvalidStateError(
                        INVALID_ACCOUNT_TYPE,
                        f"Неизвестный тип счёта: {new_type}",
                        {"allowed": list(ACCOUNT_TYPES)},
                    )
                if account.balance < 0 and not allows_negative_balance(new_type):
                    raise InvalidStateError(
                        NEGATIVE_BALANCE,
                        "Счёт с отрицательным балансом может быть только кредитным",
                        {"balance": to_money(account.balance)},
                    )
                account.account_type = new_type

        logger.info("Account updated: id=%s owner=%s", account_id, owner_id)
        return account


class DeleteAccountUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, account_id: int) -> None:
        account = AccountLedger(self.db).get(owner_id, account_id)

        tx_count = self.db.query(func.count(Transaction.id)).filter(
            Transaction.account_id == account.id
        ).scalar()
        if tx_count:
            raise ConflictError(
                ACCOUNT_HAS_TRANSACTIONS,
                "Нельзя удалить счёт, по которому есть операции",
                {"transaction_count": tx_count},
            )

        with atomic(self.db):
            self.db.delete(account)

        logger.info("Account deleted: id=%s owner=%s", account_id, owner_id)


def _ensure_unique_name(db: Session, owner_id: int, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Account.id).filter(Account.owner_id == owner_id, Account.name == name)
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    if query.first():
        raise ConflictError(ACCOUNT_NAME_EXISTS, "Счёт с таким названием уже существует", {"name": name})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_accounts(db: Session, owner_id: int) -> dict:
    """Счета по имени + сводка (кол-во, общий баланс, кол-во по типам)"""
    accounts = db.query(Account).filter(
        Account.owner_id == owner_id
    ).order_by(Account.name).all()

    by_type: dict[str, int] = {}
    total = Decimal("0")
    for account in accounts:
        by_type[account.account_type] = by_type.get(account.account_type, 0) + 1
        total += account.balance

    return {
        "accounts": [account_view(a) for a in accounts],
        "summary": {
            "total_accounts": len(accounts),
            "total_balance": to_money(total),
            "by_type": by_type,
        },
    }


def get_account(db: Session, owner_id: int, account_id: int) -> dict:
    """Счёт + 10 последних операций + доходы/расходы/кол-во"""
    account = AccountLedger(db).get(owner_id, account_id)

    recent = (
        db.query(Transaction, Category)
        .join(Category, Transaction.category_id == Category.id)
        .filter(Transaction.account_id == account.id)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .limit(RECENT_TRANSACTIONS_LIMIT)
        .all()
    )

    count, income, expenses = db.query(
        func.count(Transaction.id),
        func.sum(case((Transaction.amount > 0, Transaction.amount), else_=0)),
        func.sum(case((Transaction.amount < 0, -Transaction.amount), else_=0)),
    ).filter(Transaction.account_id == account.id).one()

    return {
        "account": account_view(account),
        "recent_transactions": [transaction_view(tx, category) for tx, category in recent],
        "stats": {
            "transaction_count": count or 0,
            "total_income": to_money(income),
            "total_expenses": to_money(expenses),
        },
    }


def get_balance_history(
    db: Session,
    owner_id: int,
    account_id: int,
    period: str | None = "month",
    today: date | None = None,
) -> dict:
    """
    Приближённая история баланса за окно периода

    Баланс на начало окна = текущий баланс - сумма операций внутри окна;
    далее бегущий баланс по датам операций (последнее значение за дату).
    """
    today = today or today_local()
    period = normalize_period(period, allow_all=False)
    start = window_start(period, today)

    account = AccountLedger(db).get(owner_id, account_id)

    rows = (
        db.query(Transaction.date, Transaction.amount)
        .filter(Transaction.account_id == account.id, Transaction.date >= start)
        .order_by(Transaction.date, Transaction.id)
        .all()
    )

    window_sum = sum((to_money(amount) for _, amount in rows), Decimal("0"))
    starting_balance = to_money(account.balance) - window_sum

    history: list[dict] = []
    running = starting_balance
    for tx_date, amount in rows:
        running += to_money(amount)
        if history and history[-1]["date"] == tx_date:
            history[-1]["balance"] = running
        else:
            history.append({"date": tx_date, "balance": running})

    return {
        "account_id": account.id,
        "period": period,
        "start_date": start,
        "starting_balance": starting_balance,
        "current_balance": to_money(account.balance),
        "history": history,
    }
