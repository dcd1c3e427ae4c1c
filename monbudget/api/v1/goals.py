"""
Goal API endpoints
"""
from datetime import date as date_type
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.goals import (
    CreateGoalUseCase, UpdateGoalUseCase, DeleteGoalUseCase, ContributeToGoalUseCase,
    get_goal, list_goals, goal_with_progress,
)
from monbudget.infrastructure.db.models import User
from monbudget.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/goals", tags=["goals"])


class CreateGoalRequest(BaseModel):
    title: str
    target_amount: str
    category: str
    current_amount: str = "0"
    deadline: date_type | None = None
    description: str | None = None

    @field_validator("target_amount", "current_amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return validate_and_normalize_amount(str(v), max_decimal_places=2)

    @field_validator("title", "category")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        return v


class UpdateGoalRequest(BaseModel):
    title: str | None = None
    target_amount: str | None = None
    current_amount: str | None = None
    deadline: date_type | None = None
    category: str | None = None
    description: str | None = None

    @field_validator("target_amount", "current_amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str | None:
        if v is None:
            return None
        return validate_and_normalize_amount(str(v), max_decimal_places=2)


class ContributeRequest(BaseModel):
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return validate_and_normalize_amount(str(v), max_decimal_places=2)


@router.get("")
def list_goals_endpoint(
    status: str | None = None,
    category: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Цели с прогрессом (status: active / completed / expired)"""
    return list_goals(db, user.id, status=status, category=category)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_goal(
    req: CreateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = CreateGoalUseCase(db).execute(
        owner_id=user.id,
        title=req.title,
        target_amount=Decimal(req.target_amount),
        category=req.category,
        current_amount=Decimal(req.current_amount),
        deadline=req.deadline,
        description=req.description,
    )
    return goal_with_progress(goal)


@router.get("/{goal_id}")
def get_goal_endpoint(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_goal(db, user.id, goal_id)


@router.put("/{goal_id}")
def update_goal(
    goal_id: int,
    req: UpdateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    for field in ("target_amount", "current_amount"):
        if changes.get(field) is not None:
            changes[field] = Decimal(changes[field])
    goal = UpdateGoalUseCase(db).execute(user.id, goal_id, **changes)
    return goal_with_progress(goal)


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteGoalUseCase(db).execute(user.id, goal_id)
    return {"ok": True}


@router.post("/{goal_id}/contribute")
def contribute(
    goal_id: int,
    req: ContributeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Взнос в цель"""
    return ContributeToGoalUseCase(db).execute(user.id, goal_id, Decimal(req.amount))
