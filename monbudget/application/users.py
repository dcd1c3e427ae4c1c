"""
User use cases - регистрация, профиль, смена пароля, удаление аккаунта
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from monbudget.application.categories import EnsureDefaultCategoriesUseCase
from monbudget.application.errors import (
    ConflictError, InvalidStateError, NotFoundError,
    EMAIL_ALREADY_EXISTS, USER_NOT_FOUND, INVALID_PASSWORD,
)
from monbudget.application.views import user_view
from monbudget.auth import get_user_by_email, hash_password, normalize_email, verify_password
from monbudget.infrastructure.db.models import Account, Budget, Goal, Transaction, User
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("first_name", "last_name", "phone", "city", "profession")


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(USER_NOT_FOUND, "Пользователь не найден", {"user_id": user_id})
    return user


class SignupUseCase:
    """
    Use case: Регистрация

    Заодно гарантирует наличие базового справочника статей.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str, password: str, first_name: str, last_name: str, **profile) -> User:
        email = normalize_email(email)
        if get_user_by_email(self.db, email):
            raise ConflictError(EMAIL_ALREADY_EXISTS, "Пользователь с таким email уже существует", {"email": email})

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=profile.get("phone"),
            city=profile.get("city"),
            profession=profile.get("profession"),
        )
        with atomic(self.db):
            self.db.add(user)
            self.db.flush()

        EnsureDefaultCategoriesUseCase(self.db).execute()
        logger.info("User signed up: id=%s", user.id)
        return user


class UpdateProfileUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, **changes) -> User:
        user = get_user(self.db, user_id)
        with atomic(self.db):
            for field in _PROFILE_FIELDS:
                if field in changes and changes[field] is not None:
                    setattr(user, field, changes[field].strip())
        logger.info("Profile updated: user=%s", user_id)
        return user


class ChangePasswordUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, current_password: str, new_password: str) -> None:
        user = get_user(self.db, user_id)
        if not verify_password(current_password, user.password_hash):
            raise InvalidStateError(INVALID_PASSWORD, "Текущий пароль неверен")
        with atomic(self.db):
            user.password_hash = hash_password(new_password)
        logger.info("Password changed: user=%s", user_id)


class DeleteUserUseCase:
    """
    Use case: Удалить пользователя со всеми данными

    Порядок удаления: операции -> бюджеты -> цели -> счета -> пользователь
    (операции ссылаются на счета без ON DELETE).
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, password: str) -> None:
        user = get_user(self.db, user_id)
        if not verify_password(password, user.password_hash):
            raise InvalidStateError(INVALID_PASSWORD, "Пароль неверен")

        with atomic(self.db):
            for model in (Transaction, Budget, Goal, Account):
                self.db.query(model).filter(model.owner_id == user_id).delete(synchronize_session=False)
            self.db.delete(user)

        logger.info("User deleted: id=%s", user_id)


def get_profile(db: Session, user_id: int) -> dict:
    """Профиль + счётчики (счета, операции, бюджеты, цели, общий баланс)"""
    user = get_user(db, user_id)

    def count(model) -> int:
        return db.query(func.count(model.id)).filter(model.owner_id == user_id).scalar() or 0

    total_balance = db.query(func.sum(Account.balance)).filter(Account.owner_id == user_id).scalar()

    return {
        **user_view(user),
        "stats": {
            "account_count": count(Account),
            "transaction_count": count(Transaction),
            "budget_count": count(Budget),
            "goal_count": count(Goal),
            "total_balance": to_money(total_balance),
        },
    }
