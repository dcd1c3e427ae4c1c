"""
Tests for Transaction Engine: create / update / delete / duplicate with balance reconciliation
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func

from monbudget.application.accounts import AccountLedger
from monbudget.application.errors import (
    NotFoundError, InvalidStateError,
    ACCOUNT_NOT_FOUND, CATEGORY_NOT_FOUND, CATEGORY_TYPE_MISMATCH,
    INSUFFICIENT_FUNDS, TRANSACTION_NOT_FOUND, INVALID_AMOUNT,
)
from monbudget.application.transactions import (
    CreateTransactionUseCase, UpdateTransactionUseCase,
    DeleteTransactionUseCase, DuplicateTransactionUseCase,
)
from monbudget.infrastructure.db.models import Account, Transaction
from monbudget.utils.clock import today_local


def _create(db, owner, account, category, amount, tx_date=date(2026, 10, 1), description="Test", notes=None):
    return CreateTransactionUseCase(db).execute(
        owner_id=owner.id,
        account_id=account.id,
        category_id=category.id,
        amount=Decimal(str(amount)),
        tx_date=tx_date,
        description=description,
        notes=notes,
    )


def _assert_conserved(db, account: Account):
    """balance == initial_balance + SUM(amount)"""
    db.refresh(account)
    total = db.query(func.sum(Transaction.amount)).filter(
        Transaction.account_id == account.id
    ).scalar() or 0
    assert account.balance == account.initial_balance + Decimal(str(total))


class TestCreateTransaction:
    def test_expense_then_overdraft_rejected(self, db_session, owner, categories, make_account):
        """100 000 -> расход 30 000 -> 70 000; расход 80 000 отклонён"""
        account = make_account(balance="100000")
        food = categories["Food"]

        _create(db_session, owner, account, food, "-30000")
        db_session.refresh(account)
        assert account.balance == Decimal("70000")

        with pytest.raises(InvalidStateError) as exc:
            _create(db_session, owner, account, food, "-80000")

        assert exc.value.code == INSUFFICIENT_FUNDS
        assert exc.value.details["current_balance"] == Decimal("70000")
        assert exc.value.details["transaction_amount"] == Decimal("-80000")
        assert exc.value.details["resulting_balance"] == Decimal("-10000")

        db_session.refresh(account)
        assert account.balance == Decimal("70000")
        assert db_session.query(Transaction).count() == 1
        _assert_conserved(db_session, account)

    def test_income_increases_balance(self, db_session, owner, categories, make_account):
        account = make_account(balance="0")
        tx = _create(db_session, owner, account, categories["Salary"], "250000", notes="Octobre")

        db_session.refresh(account)
        assert account.balance == Decimal("250000")
        assert tx.notes == "Octobre"
        _assert_conserved(db_session, account)

    def test_credit_account_may_go_negative(self, db_session, owner, categories, make_account):
        card = make_account(balance="0", account_type="credit")
        _create(db_session, owner, card, categories["Leisure"], "-45000")

        db_session.refresh(card)
        assert card.balance == Decimal("-45000")

    def test_spending_to_exact_zero_allowed(self, db_session, owner, categories, make_account):
        account = make_account(balance="5000")
        _create(db_session, owner, account, categories["Transport"], "-5000")

        db_session.refresh(account)
        assert account.balance == Decimal("0")

    def test_sign_must_match_category(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")

        with pytest.raises(InvalidStateError) as exc:
            _create(db_session, owner, account, categories["Salary"], "-100")
        assert exc.value.code == CATEGORY_TYPE_MISMATCH

        with pytest.raises(InvalidStateError) as exc:
            _create(db_session, owner, account, categories["Food"], "100")
        assert exc.value.code == CATEGORY_TYPE_MISMATCH

    def test_zero_amount_rejected(self, db_session, owner, categories, make_account):
        account = make_account(balance="100")
        with pytest.raises(InvalidStateError) as exc:
            _create(db_session, owner, account, categories["Food"], "0")
        assert exc.value.code == INVALID_AMOUNT

    def test_foreign_account_reported_as_not_found(self, db_session, owner, other_owner, categories, make_account):
        foreign = make_account(balance="100000", owner_id=other_owner.id)

        with pytest.raises(NotFoundError) as exc:
            _create(db_session, owner, foreign, categories["Food"], "-100")
        assert exc.value.code == ACCOUNT_NOT_FOUND

        db_session.refresh(foreign)
        assert foreign.balance == Decimal("100000")

    def test_unknown_category(self, db_session, owner, make_account):
        account = make_account(balance="100")
        with pytest.raises(NotFoundError) as exc:
            CreateTransactionUseCase(db_session).execute(
                owner_id=owner.id, account_id=account.id, category_id=9999,
                amount=Decimal("-10"), description="x",
            )
        assert exc.value.code == CATEGORY_NOT_FOUND

    def test_default_date_is_today(self, db_session, owner, categories, make_account):
        account = make_account(balance="100")
        tx = CreateTransactionUseCase(db_session).execute(
            owner_id=owner.id, account_id=account.id, category_id=categories["Food"].id,
            amount=Decimal("-10"), description="Pain",
        )
        assert tx.date == today_local()


class TestUpdateTransaction:
    def test_same_account_applies_difference(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        tx = _create(db_session, owner, account, categories["Food"], "-30000")

        UpdateTransactionUseCase(db_session).execute(owner.id, tx.id, amount=Decimal("-50000"))

        db_session.refresh(account)
        assert account.balance == Decimal("50000")
        _assert_conserved(db_session, account)

    def test_same_account_increase_beyond_funds_rejected(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        tx = _create(db_session, owner, account, categories["Food"], "-30000")

        with pytest.raises(InvalidStateError) as exc:
            UpdateTransactionUseCase(db_session).execute(owner.id, tx.id, amount=Decimal("-130001"))
        assert exc.value.code == INSUFFICIENT_FUNDS

        db_session.refresh(account)
        db_session.refresh(tx)
        assert account.balance == Decimal("70000")
        assert tx.amount == Decimal("-30000")

    def test_move_to_other_account(self, db_session, owner, categories, make_account):
        first = make_account(balance="100000")
        second = make_account(balance="20000")
        tx = _create(db_session, owner, first, categories["Food"], "-15000")

        UpdateTransactionUseCase(db_session).execute(
            owner.id, tx.id, account_id=second.id, amount=Decimal("-12000"),
        )

        db_session.refresh(first)
        db_session.refresh(second)
        assert first.balance == Decimal("100000")
        assert second.balance == Decimal("8000")
        _assert_conserved(db_session, first)
        _assert_conserved(db_session, second)

    def test_move_income_off_drained_account_rejected(self, db_session, owner, categories, make_account):
        """Снятие дохода со старого счёта - тоже уменьшение баланса"""
        first = make_account(balance="0")
        second = make_account(balance="0")
        salary = _create(db_session, owner, first, categories["Salary"], "50000")
        _create(db_session, owner, first, categories["Housing"], "-40000")

        with pytest.raises(InvalidStateError) as exc:
            UpdateTransactionUseCase(db_session).execute(owner.id, salary.id, account_id=second.id)
        assert exc.value.code == INSUFFICIENT_FUNDS

        db_session.refresh(first)
        db_session.refresh(second)
        assert first.balance == Decimal("10000")
        assert second.balance == Decimal("0")

    def test_move_to_foreign_account_rejected(self, db_session, owner, other_owner, categories, make_account):
        mine = make_account(balance="1000")
        foreign = make_account(balance="1000", owner_id=other_owner.id)
        tx = _create(db_session, owner, mine, categories["Food"], "-100")

        with pytest.raises(NotFoundError) as exc:
            UpdateTransactionUseCase(db_session).execute(owner.id, tx.id, account_id=foreign.id)
        assert exc.value.code == ACCOUNT_NOT_FOUND

    def test_category_change_checks_sign(self, db_session, owner, categories, make_account):
        account = make_account(balance="1000")
        tx = _create(db_session, owner, account, categories["Food"], "-100")

        with pytest.raises(InvalidStateError) as exc:
            UpdateTransactionUseCase(db_session).execute(owner.id, tx.id, category_id=categories["Salary"].id)
        assert exc.value.code == CATEGORY_TYPE_MISMATCH

    def test_switch_expense_to_income(self, db_session, owner, categories, make_account):
        account = make_account(balance="1000")
        tx = _create(db_session, owner, account, categories["Food"], "-100")

        UpdateTransactionUseCase(db_session).execute(
            owner.id, tx.id,
            category_id=categories["Freelance"].id,
            amount=Decimal("300"),
            description="Mission",
            tx_date=date(2026, 10, 5),
            notes=None,
        )

        db_session.refresh(account)
        db_session.refresh(tx)
        assert account.balance == Decimal("1300")
        assert tx.description == "Mission"
        assert tx.date == date(2026, 10, 5)
        _assert_conserved(db_session, account)

    def test_foreign_transaction_not_found(self, db_session, owner, other_owner, categories, make_account):
        account = make_account(balance="1000")
        tx = _create(db_session, owner, account, categories["Food"], "-100")

        with pytest.raises(NotFoundError) as exc:
            UpdateTransactionUseCase(db_session).execute(other_owner.id, tx.id, amount=Decimal("-1"))
        assert exc.value.code == TRANSACTION_NOT_FOUND


class TestDeleteTransaction:
    def test_delete_reverses_exactly_once(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        tx = _create(db_session, owner, account, categories["Food"], "-30000")
        tx_id = tx.id

        DeleteTransactionUseCase(db_session).execute(owner.id, tx_id)
        db_session.refresh(account)
        assert account.balance == Decimal("100000")

        with pytest.raises(NotFoundError) as exc:
            DeleteTransactionUseCase(db_session).execute(owner.id, tx_id)
        assert exc.value.code == TRANSACTION_NOT_FOUND

        db_session.refresh(account)
        assert account.balance == Decimal("100000")
        _assert_conserved(db_session, account)

    def test_delete_spent_income_rejected(self, db_session, owner, categories, make_account):
        """0 +1000 -800: отмена дохода увела бы счёт в -800"""
        account = make_account(balance="0")
        salary = _create(db_session, owner, account, categories["Salary"], "1000")
        _create(db_session, owner, account, categories["Food"], "-800")

        with pytest.raises(InvalidStateError) as exc:
            DeleteTransactionUseCase(db_session).execute(owner.id, salary.id)

        assert exc.value.code == INSUFFICIENT_FUNDS
        assert exc.value.details["resulting_balance"] == Decimal("-800")
        db_session.refresh(account)
        assert account.balance == Decimal("200")
        assert db_session.get(Transaction, salary.id) is not None
        _assert_conserved(db_session, account)

    def test_delete_income_on_credit_account(self, db_session, owner, categories, make_account):
        account = make_account(balance="0", account_type="credit")
        salary = _create(db_session, owner, account, categories["Salary"], "1000")
        _create(db_session, owner, account, categories["Food"], "-800")

        DeleteTransactionUseCase(db_session).execute(owner.id, salary.id)

        db_session.refresh(account)
        assert account.balance == Decimal("-800")
        _assert_conserved(db_session, account)


class TestRollback:
    """Сбой после частичной записи откатывает всю операцию"""

    @staticmethod
    def _fail_on_call(monkeypatch, n: int):
        calls = {"n": 0}
        original = AccountLedger.apply_delta

        def apply_delta(self, account_id, delta):
            calls["n"] += 1
            if calls["n"] == n:
                raise RuntimeError("db failure")
            return original(self, account_id, delta)

        monkeypatch.setattr(AccountLedger, "apply_delta", apply_delta)

    def test_move_between_accounts_rolls_back(self, db_session, owner, categories, make_account, monkeypatch):
        source = make_account("Main", balance="1000")
        target = make_account("Wave", balance="1000")
        tx = _create(db_session, owner, source, categories["Food"], "-100")
        tx_id = tx.id

        self._fail_on_call(monkeypatch, 2)
        with pytest.raises(RuntimeError):
            UpdateTransactionUseCase(db_session).execute(
                owner.id, tx_id, account_id=target.id, amount=Decimal("-300"),
            )

        db_session.refresh(source)
        db_session.refresh(target)
        assert source.balance == Decimal("900")
        assert target.balance == Decimal("1000")
        row = db_session.get(Transaction, tx_id)
        assert row.account_id == source.id
        assert row.amount == Decimal("-100")

    def test_create_rolls_back_row(self, db_session, owner, categories, make_account, monkeypatch):
        account = make_account(balance="1000")

        self._fail_on_call(monkeypatch, 1)
        with pytest.raises(RuntimeError):
            _create(db_session, owner, account, categories["Food"], "-100")

        db_session.refresh(account)
        assert account.balance == Decimal("1000")
        assert db_session.query(Transaction).filter(Transaction.account_id == account.id).count() == 0


class TestDuplicateTransaction:
    def test_duplicate_defaults(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        original = _create(
            db_session, owner, account, categories["Housing"], "-25000",
            description="Loyer", notes="Octobre",
        )

        copy = DuplicateTransactionUseCase(db_session).execute(owner.id, original.id)

        assert copy.id != original.id
        assert copy.description == "Loyer (copy)"
        assert copy.date == today_local()
        assert copy.notes == "Octobre"
        assert copy.amount == Decimal("-25000")
        assert copy.category_id == original.category_id
        db_session.refresh(account)
        assert account.balance == Decimal("50000")

    def test_duplicate_with_overrides(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        original = _create(db_session, owner, account, categories["Food"], "-1000")
        new_date = date(2026, 9, 1)

        copy = DuplicateTransactionUseCase(db_session).execute(
            owner.id, original.id, new_date=new_date, new_description="Marché",
        )
        assert copy.date == new_date
        assert copy.description == "Marché"

    def test_duplicate_is_funds_checked(self, db_session, owner, categories, make_account):
        account = make_account(balance="30000")
        original = _create(db_session, owner, account, categories["Food"], "-20000")

        with pytest.raises(InvalidStateError) as exc:
            DuplicateTransactionUseCase(db_session).execute(owner.id, original.id)
        assert exc.value.code == INSUFFICIENT_FUNDS
        assert db_session.query(Transaction).count() == 1

    def test_duplicate_is_independent(self, db_session, owner, categories, make_account):
        account = make_account(balance="10000")
        original = _create(db_session, owner, account, categories["Food"], "-1000")
        copy = DuplicateTransactionUseCase(db_session).execute(
            owner.id, original.id, new_date=today_local() - timedelta(days=1),
        )

        DeleteTransactionUseCase(db_session).execute(owner.id, original.id)

        assert db_session.get(Transaction, copy.id) is not None
        db_session.refresh(account)
        assert account.balance == Decimal("9000")
