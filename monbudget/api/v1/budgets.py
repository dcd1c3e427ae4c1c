"""
Budget API endpoints
"""
from datetime import date as date_type
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.budgets import (
    CreateBudgetUseCase, UpdateBudgetUseCase, DeleteBudgetUseCase,
    list_budgets, get_budget, evaluated_view,
)
from monbudget.domain.budget import BUDGET_PERIODS
from monbudget.infrastructure.db.models import User
from monbudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/budgets", tags=["budgets"])


def _validate_period(v: str | None) -> str | None:
    if v is not None and v not in BUDGET_PERIODS:
        raise ValueError(f"Период должен быть одним из: {', '.join(BUDGET_PERIODS)}")
    return v


class CreateBudgetRequest(BaseModel):
    category_id: int
    amount: str
    period: str  # weekly / monthly / yearly
    start_date: date_type
    end_date: date_type

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return validate_and_normalize_amount(str(v), max_decimal_places=2)

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        return _validate_period(v)


class UpdateBudgetRequest(BaseModel):
    category_id: int | None = None
    amount: str | None = None
    period: str | None = None
    start_date: date_type | None = None
    end_date: date_type | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str | None:
        if v is None:
            return None
        return validate_and_normalize_amount(str(v), max_decimal_places=2)

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: str | None) -> str | None:
        return _validate_period(v)


@router.get("")
def list_budgets_endpoint(
    period: str | None = None,
    active: bool | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Бюджеты с оценкой (active=true - только текущие окна)"""
    return list_budgets(db, user.id, period=period, active=active)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_budget(
    req: CreateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    budget = CreateBudgetUseCase(db).execute(
        owner_id=user.id,
        category_id=req.category_id,
        amount=Decimal(req.amount),
        period=req.period,
        start_date=req.start_date,
        end_date=req.end_date,
    )
    return evaluated_view(db, budget)


@router.get("/{budget_id}")
def get_budget_endpoint(
    budget_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Бюджет + оценка + операции в окне"""
    return get_budget(db, user.id, budget_id)


@router.put("/{budget_id}")
def update_budget(
    budget_id: int,
    req: UpdateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("amount") is not None:
        changes["amount"] = Decimal(changes["amount"])
    budget = UpdateBudgetUseCase(db).execute(user.id, budget_id, **changes)
    return evaluated_view(db, budget)


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteBudgetUseCase(db).execute(user.id, budget_id)
    return {"ok": True}
