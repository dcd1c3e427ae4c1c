"""
Account API endpoints
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.accounts import (
    CreateAccountUseCase, UpdateAccountUseCase, DeleteAccountUseCase,
    list_accounts, get_account, get_balance_history,
)
from monbudget.application.views import account_view
from monbudget.domain.account import ACCOUNT_TYPES
from monbudget.infrastructure.db.models import User
from monbudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


def _validate_account_type(v: str | None) -> str | None:
    if v is not None and v not in ACCOUNT_TYPES:
        raise ValueError(f"Тип счёта должен быть одним из: {', '.join(ACCOUNT_TYPES)}")
    return v


# === Request models ===

class CreateAccountRequest(BaseModel):
    name: str
    bank: str
    account_type: str  # checking, savings, credit, mobile
    balance: str = "0"  # Начальный баланс

    @field_validator("name", "bank")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        if len(v) > 100:
            raise ValueError("Максимум 100 символов")
        return v

    @field_validator("account_type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        return _validate_account_type(v)

    @field_validator("balance", mode="before")
    @classmethod
    def validate_balance(cls, v) -> str:
        """Валидация и нормализация баланса (точка/запятая, макс 2 знака)"""
        return validate_and_normalize_amount(str(v), max_decimal_places=2)


class UpdateAccountRequest(BaseModel):
    """Баланс через этот запрос не меняется"""
    name: str | None = None
    bank: str | None = None
    account_type: str | None = None

    @field_validator("account_type")
    @classmethod
    def validate_type(cls, v: str | None) -> str | None:
        return _validate_account_type(v)


# === Endpoints ===

@router.get("")
def list_accounts_endpoint(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Счета + сводка"""
    return list_accounts(db, user.id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_account(
    req: CreateAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = CreateAccountUseCase(db).execute(
        owner_id=user.id,
        name=req.name,
        bank=req.bank,
        account_type=req.account_type,
        balance=Decimal(req.balance),
    )
    return account_view(account)


@router.get("/{account_id}")
def get_account_endpoint(
    account_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Счёт + последние операции + статистика"""
    return get_account(db, user.id, account_id)


@router.put("/{account_id}")
def update_account(
    account_id: int,
    req: UpdateAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    account = UpdateAccountUseCase(db).execute(user.id, account_id, **req.model_dump(exclude_unset=True))
    return account_view(account)


@router.delete("/{account_id}")
def delete_account(
    account_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteAccountUseCase(db).execute(user.id, account_id)
    return {"ok": True}


@router.get("/{account_id}/balance-history")
def balance_history(
    account_id: int,
    period: str = "month",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """История баланса: week / month / quarter / year"""
    return get_balance_history(db, user.id, account_id, period)
