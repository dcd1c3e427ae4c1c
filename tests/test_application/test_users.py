"""
Tests for signup, profile, password change and account deletion
"""
from datetime import date
from decimal import Decimal

import pytest

from monbudget.application.errors import (
    ConflictError, InvalidStateError, NotFoundError,
    EMAIL_ALREADY_EXISTS, USER_NOT_FOUND, INVALID_PASSWORD,
)
from monbudget.application.users import (
    SignupUseCase, UpdateProfileUseCase, ChangePasswordUseCase, DeleteUserUseCase,
    get_profile, get_user,
)
from monbudget.auth import authenticate, verify_password
from monbudget.infrastructure.db.models import Account, Budget, Category, Goal, Transaction, User


class TestSignup:
    def test_signup_normalizes_email_and_seeds_categories(self, db_session):
        user = SignupUseCase(db_session).execute(
            email="  Ndeye@Example.COM ", password="motdepasse", first_name="Ndeye", last_name="Fall",
            city="Dakar",
        )

        assert user.email == "ndeye@example.com"
        assert user.city == "Dakar"
        assert verify_password("motdepasse", user.password_hash)
        assert db_session.query(Category).count() > 0

    def test_duplicate_email(self, db_session, owner):
        with pytest.raises(ConflictError) as exc:
            SignupUseCase(db_session).execute(
                email="AWA@example.com", password="x" * 8, first_name="A", last_name="D"
            )
        assert exc.value.code == EMAIL_ALREADY_EXISTS

    def test_authenticate(self, db_session, owner):
        assert authenticate(db_session, "Awa@Example.com", "secret123").id == owner.id
        assert authenticate(db_session, "awa@example.com", "wrong") is None
        assert authenticate(db_session, "nobody@example.com", "secret123") is None


class TestProfile:
    def test_update_profile(self, db_session, owner):
        UpdateProfileUseCase(db_session).execute(owner.id, city=" Thiès ", profession="Comptable", email="x@y.z")

        db_session.refresh(owner)
        assert owner.city == "Thiès"
        assert owner.profession == "Comptable"
        assert owner.email == "awa@example.com"

    def test_change_password(self, db_session, owner):
        with pytest.raises(InvalidStateError) as exc:
            ChangePasswordUseCase(db_session).execute(owner.id, "wrong", "newsecret")
        assert exc.value.code == INVALID_PASSWORD

        ChangePasswordUseCase(db_session).execute(owner.id, "secret123", "newsecret")
        assert authenticate(db_session, owner.email, "newsecret") is not None

    def test_get_profile_stats(self, db_session, owner, household):
        profile = get_profile(db_session, owner.id)

        assert profile["email"] == "awa@example.com"
        assert profile["stats"] == {
            "account_count": 2,
            "transaction_count": 7,
            "budget_count": 1,
            "goal_count": 2,
            "total_balance": Decimal("2820000"),
        }

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            get_user(db_session, 404)
        assert exc.value.code == USER_NOT_FOUND


class TestDeleteUser:
    def test_delete_removes_owned_data(self, db_session, owner, other_owner, categories, household, make_account):
        foreign = make_account(name="Foreign", owner_id=other_owner.id)
        user_id = owner.id

        DeleteUserUseCase(db_session).execute(user_id, "secret123")

        assert db_session.get(User, user_id) is None
        for model in (Transaction, Budget, Goal, Account):
            assert db_session.query(model).filter(model.owner_id == user_id).count() == 0
        assert db_session.get(Account, foreign.id) is not None
        # Справочник статей общий и не удаляется
        assert db_session.query(Category).count() == len(categories)

    def test_delete_requires_password(self, db_session, owner, household):
        with pytest.raises(InvalidStateError) as exc:
            DeleteUserUseCase(db_session).execute(owner.id, "nope")
        assert exc.value.code == INVALID_PASSWORD
        assert db_session.query(Transaction).filter(Transaction.owner_id == owner.id).count() == 7
