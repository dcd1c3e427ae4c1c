"""
Tests for Account Ledger: account CRUD, balance writes and balance history
"""
from datetime import date
from decimal import Decimal

import pytest

from monbudget.application.accounts import (
    AccountLedger, CreateAccountUseCase, UpdateAccountUseCase, DeleteAccountUseCase,
    list_accounts, get_account, get_balance_history,
)
from monbudget.application.errors import (
    NotFoundError, ConflictError, InvalidStateError,
    ACCOUNT_NOT_FOUND, ACCOUNT_NAME_EXISTS, ACCOUNT_HAS_TRANSACTIONS,
    NEGATIVE_BALANCE, INSUFFICIENT_FUNDS, INVALID_ACCOUNT_TYPE,
)
from monbudget.application.transactions import CreateTransactionUseCase, DeleteTransactionUseCase
from monbudget.infrastructure.db.models import Account
from monbudget.infrastructure.db.session import atomic


def _tx(db, owner, account, category, amount, tx_date):
    return CreateTransactionUseCase(db).execute(
        owner_id=owner.id,
        account_id=account.id,
        category_id=category.id,
        amount=Decimal(amount),
        tx_date=tx_date,
        description="Test",
    )


class TestCreateAccount:
    def test_create_sets_initial_balance(self, db_session, owner):
        account = CreateAccountUseCase(db_session).execute(
            owner_id=owner.id, name="  Orange Money ", bank="Orange",
            account_type="mobile", balance=Decimal("15000"),
        )
        assert account.name == "Orange Money"
        assert account.balance == Decimal("15000")
        assert account.initial_balance == Decimal("15000")

    def test_duplicate_name_per_owner(self, db_session, owner, other_owner, make_account):
        make_account(name="Main")

        with pytest.raises(ConflictError) as exc:
            make_account(name="Main")
        assert exc.value.code == ACCOUNT_NAME_EXISTS

        # Другой владелец может использовать то же имя
        make_account(name="Main", owner_id=other_owner.id)

    def test_negative_opening_balance_only_for_credit(self, db_session, make_account):
        with pytest.raises(InvalidStateError) as exc:
            make_account(balance="-100", account_type="savings")
        assert exc.value.code == NEGATIVE_BALANCE

        card = make_account(balance="-100", account_type="credit")
        assert card.balance == Decimal("-100")

    def test_unknown_type_rejected(self, db_session, make_account):
        with pytest.raises(InvalidStateError) as exc:
            make_account(account_type="crypto")
        assert exc.value.code == INVALID_ACCOUNT_TYPE


class TestUpdateAccount:
    def test_rename_and_retype(self, db_session, owner, make_account):
        account = make_account(name="Old", balance="1000")

        UpdateAccountUseCase(db_session).execute(
            owner.id, account.id, name="New", bank="Ecobank", account_type="savings",
        )
        db_session.refresh(account)
        assert account.name == "New"
        assert account.bank == "Ecobank"
        assert account.account_type == "savings"
        assert account.balance == Decimal("1000")

    def test_balance_is_not_writable(self, db_session, owner, make_account):
        account = make_account(balance="1000")
        UpdateAccountUseCase(db_session).execute(owner.id, account.id, balance=Decimal("999999"))

        db_session.refresh(account)
        assert account.balance == Decimal("1000")

    def test_rename_to_existing_name(self, db_session, owner, make_account):
        make_account(name="Main")
        other = make_account(name="Savings")

        with pytest.raises(ConflictError) as exc:
            UpdateAccountUseCase(db_session).execute(owner.id, other.id, name="Main")
        assert exc.value.code == ACCOUNT_NAME_EXISTS

    def test_negative_credit_cannot_become_checking(self, db_session, owner, make_account):
        card = make_account(balance="-5000", account_type="credit")

        with pytest.raises(InvalidStateError) as exc:
            UpdateAccountUseCase(db_session).execute(owner.id, card.id, account_type="checking")
        assert exc.value.code == NEGATIVE_BALANCE

        db_session.refresh(card)
        assert card.account_type == "credit"

    def test_foreign_account_not_found(self, db_session, owner, other_owner, make_account):
        foreign = make_account(owner_id=other_owner.id)
        with pytest.raises(NotFoundError) as exc:
            UpdateAccountUseCase(db_session).execute(owner.id, foreign.id, name="Mine")
        assert exc.value.code == ACCOUNT_NOT_FOUND


class TestDeleteAccount:
    def test_delete_unused_account(self, db_session, owner, make_account):
        account = make_account()
        account_id = account.id
        DeleteAccountUseCase(db_session).execute(owner.id, account_id)
        assert db_session.get(Account, account_id) is None

    def test_delete_account_with_transactions_rejected(self, db_session, owner, categories, make_account):
        account = make_account(balance="1000")
        _tx(db_session, owner, account, categories["Food"], "-100", date(2026, 10, 1))
        _tx(db_session, owner, account, categories["Food"], "-200", date(2026, 10, 2))

        with pytest.raises(ConflictError) as exc:
            DeleteAccountUseCase(db_session).execute(owner.id, account.id)
        assert exc.value.code == ACCOUNT_HAS_TRANSACTIONS
        assert exc.value.details["transaction_count"] == 2


class TestLedger:
    def test_apply_delta_is_relative(self, db_session, owner, make_account):
        account = make_account(balance="1000")
        ledger = AccountLedger(db_session)

        with atomic(db_session):
            ledger.apply_delta(account.id, Decimal("250.50"))
            ledger.apply_delta(account.id, Decimal("-50.50"))

        assert ledger.get_balance(owner.id, account.id) == Decimal("1200.00")

    def test_ensure_funds(self, db_session, owner, make_account):
        account = make_account(balance="100")
        ledger = AccountLedger(db_session)

        ledger.ensure_funds(account, Decimal("-100"))
        with pytest.raises(InvalidStateError) as exc:
            ledger.ensure_funds(account, Decimal("-100.01"))
        assert exc.value.code == INSUFFICIENT_FUNDS

    def test_lock_for_update_scoped_by_owner(self, db_session, owner, other_owner, make_account):
        account = make_account()
        with pytest.raises(NotFoundError):
            AccountLedger(db_session).lock_for_update(other_owner.id, account.id)


class TestAccountQueries:
    def test_list_accounts_summary(self, db_session, owner, other_owner, make_account):
        make_account(name="Wave", balance="20000", account_type="mobile")
        make_account(name="Epargne", balance="300000", account_type="savings")
        make_account(name="Courant", balance="80000")
        make_account(name="Hidden", balance="1", owner_id=other_owner.id)

        result = list_accounts(db_session, owner.id)

        assert [a["name"] for a in result["accounts"]] == ["Courant", "Epargne", "Wave"]
        assert result["summary"]["total_accounts"] == 3
        assert result["summary"]["total_balance"] == Decimal("400000")
        assert result["summary"]["by_type"] == {"mobile": 1, "savings": 1, "checking": 1}

    def test_get_account_with_recent_transactions(self, db_session, owner, categories, make_account):
        account = make_account(balance="0")
        _tx(db_session, owner, account, categories["Salary"], "200000", date(2026, 9, 1))
        for day in range(1, 13):
            _tx(db_session, owner, account, categories["Food"], "-1000", date(2026, 10, day))

        result = get_account(db_session, owner.id, account.id)

        assert len(result["recent_transactions"]) == 10
        assert result["recent_transactions"][0]["date"] == date(2026, 10, 12)
        assert result["stats"]["transaction_count"] == 13
        assert result["stats"]["total_income"] == Decimal("200000")
        assert result["stats"]["total_expenses"] == Decimal("12000")
        assert result["account"]["balance"] == Decimal("188000")

    def test_balance_history(self, db_session, owner, categories, make_account):
        account = make_account(balance="100000")
        _tx(db_session, owner, account, categories["Salary"], "50000", date(2026, 8, 1))
        _tx(db_session, owner, account, categories["Food"], "-10000", date(2026, 10, 1))
        _tx(db_session, owner, account, categories["Food"], "-5000", date(2026, 10, 1))
        _tx(db_session, owner, account, categories["Freelance"], "20000", date(2026, 10, 5))

        result = get_balance_history(db_session, owner.id, account.id, "month", today=date(2026, 10, 17))

        assert result["start_date"] == date(2026, 9, 17)
        assert result["current_balance"] == Decimal("155000")
        assert result["starting_balance"] == Decimal("150000")
        assert result["history"] == [
            {"date": date(2026, 10, 1), "balance": Decimal("135000")},
            {"date": date(2026, 10, 5), "balance": Decimal("155000")},
        ]

    def test_balance_history_unknown_period(self, db_session, owner, make_account):
        account = make_account(balance="10")
        result = get_balance_history(db_session, owner.id, account.id, "all", today=date(2026, 10, 17))
        assert result["period"] == "month"
        assert result["history"] == []
        assert result["starting_balance"] == Decimal("10")

    def test_balance_after_delete_matches_history(self, db_session, owner, categories, make_account):
        account = make_account(balance="1000")
        tx = _tx(db_session, owner, account, categories["Food"], "-400", date(2026, 10, 10))
        DeleteTransactionUseCase(db_session).execute(owner.id, tx.id)

        result = get_balance_history(db_session, owner.id, account.id, "week", today=date(2026, 10, 12))
        assert result["starting_balance"] == Decimal("1000")
        assert result["history"] == []
