"""
Transaction API endpoints
"""
from datetime import date as date_type
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.transactions import (
    CreateTransactionUseCase, UpdateTransactionUseCase,
    DeleteTransactionUseCase, DuplicateTransactionUseCase,
    get_transaction, list_transactions, find_similar, period_stats,
    DESCRIPTION_MAX_LENGTH,
)
from monbudget.domain.transaction import TYPE_INCOME, TYPE_EXPENSE, TransactionFilter, TransactionSort
from monbudget.infrastructure.db.models import User
from monbudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request models ===

def _clean_description(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Описание не может быть пустым")
    if len(v) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Максимум {DESCRIPTION_MAX_LENGTH} символов")
    return v


class CreateTransactionRequest(BaseModel):
    account_id: int
    category_id: int
    amount: str  # > 0 доход, < 0 расход
    description: str
    date: date_type | None = None  # по умолчанию сегодня
    notes: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        """Валидация и нормализация суммы (точка/запятая, макс 2 знака)"""
        return validate_and_normalize_amount(str(v), max_decimal_places=2)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _clean_description(v)


class UpdateTransactionRequest(BaseModel):
    account_id: int | None = None
    category_id: int | None = None
    amount: str | None = None
    description: str | None = None
    date: date_type | None = None
    notes: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str | None:
        if v is None:
            return None
        return validate_and_normalize_amount(str(v), max_decimal_places=2)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _clean_description(v)


class DuplicateTransactionRequest(BaseModel):
    date: date_type | None = None
    description: str | None = None


# === Endpoints ===

@router.get("")
def list_transactions_endpoint(
    category: str | None = None,
    account_id: int | None = None,
    type: str | None = Query(None, pattern=f"^({TYPE_INCOME}|{TYPE_EXPENSE})$"),
    search: str | None = None,
    start_date: date_type | None = None,
    end_date: date_type | None = None,
    sort: str | None = None,
    order: str | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Лента операций: фильтр + сортировка + пагинация + статистика"""
    flt = TransactionFilter(
        category=category,
        account_id=account_id,
        type=type,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    return list_transactions(db, user.id, flt, TransactionSort.parse(sort, order), limit, offset)


@router.get("/stats/period")
def period_stats_endpoint(
    period: str = "month",
    group_by: str = "category",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return period_stats(db, user.id, period, group_by)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_transaction(
    req: CreateTransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tx = CreateTransactionUseCase(db).execute(
        owner_id=user.id,
        account_id=req.account_id,
        category_id=req.category_id,
        amount=Decimal(req.amount),
        tx_date=req.date,
        description=req.description,
        notes=req.notes,
    )
    return get_transaction(db, user.id, tx.id)


@router.get("/{transaction_id}")
def get_transaction_endpoint(
    transaction_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_transaction(db, user.id, transaction_id)


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: int,
    req: UpdateTransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("amount") is not None:
        changes["amount"] = Decimal(changes["amount"])
    if "date" in changes:
        changes["tx_date"] = changes.pop("date")
    UpdateTransactionUseCase(db).execute(user.id, transaction_id, **changes)
    return get_transaction(db, user.id, transaction_id)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteTransactionUseCase(db).execute(user.id, transaction_id)
    return {"ok": True}


@router.post("/{transaction_id}/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_transaction(
    transaction_id: int,
    req: DuplicateTransactionRequest | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    req = req or DuplicateTransactionRequest()
    tx = DuplicateTransactionUseCase(db).execute(
        user.id, transaction_id, new_date=req.date, new_description=req.description
    )
    return get_transaction(db, user.id, tx.id)


@router.get("/{transaction_id}/similar")
def similar_transactions(
    transaction_id: int,
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return find_similar(db, user.id, transaction_id, limit)
