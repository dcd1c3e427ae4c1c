"""
Category API endpoints (глобальный справочник статей)
"""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.categories import (
    CreateCategoryUseCase, UpdateCategoryUseCase, DeleteCategoryUseCase,
    get_category, list_categories, get_category_stats,
)
from monbudget.application.views import category_view
from monbudget.domain.category import CATEGORY_TYPES, DEFAULT_COLOR
from monbudget.infrastructure.db.models import User
from monbudget.utils.validation import validate_hex_color


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


class CreateCategoryRequest(BaseModel):
    name: str
    category_type: str  # income / expense
    color: str = DEFAULT_COLOR

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Название статьи не может быть пустым")
        return v

    @field_validator("category_type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CATEGORY_TYPES:
            raise ValueError(f"Тип статьи должен быть одним из: {', '.join(CATEGORY_TYPES)}")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        return validate_hex_color(v)


class UpdateCategoryRequest(BaseModel):
    name: str | None = None
    category_type: str | None = None
    color: str | None = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str | None) -> str | None:
        return validate_hex_color(v) if v is not None else None


@router.get("")
def list_categories_endpoint(
    category_type: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [category_view(c) for c in list_categories(db, category_type)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    req: CreateCategoryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = CreateCategoryUseCase(db).execute(req.name, req.category_type, req.color)
    return category_view(category)


@router.get("/{category_id}")
def get_category_endpoint(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return category_view(get_category(db, category_id))


@router.get("/{category_id}/stats")
def category_stats(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Статистика текущего пользователя по статье"""
    return get_category_stats(db, user.id, category_id)


@router.put("/{category_id}")
def update_category(
    category_id: int,
    req: UpdateCategoryRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    category = UpdateCategoryUseCase(db).execute(category_id, **req.model_dump(exclude_unset=True))
    return category_view(category)


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteCategoryUseCase(db).execute(category_id)
    return {"ok": True}
