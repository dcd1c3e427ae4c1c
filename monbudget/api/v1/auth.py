"""
Authentication & profile routes (signup, login, logout, me)
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.users import (
    SignupUseCase, UpdateProfileUseCase, ChangePasswordUseCase, DeleteUserUseCase, get_profile,
)
from monbudget.application.views import user_view
from monbudget.auth import authenticate
from monbudget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


# === Request models ===

class SignupRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str | None = None
    city: str | None = None
    profession: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Некорректный email")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Пароль должен быть не короче {MIN_PASSWORD_LENGTH} символов")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    city: str | None = None
    profession: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Пароль должен быть не короче {MIN_PASSWORD_LENGTH} символов")
        return v


class DeleteAccountRequest(BaseModel):
    password: str


# === Endpoints ===

@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(request: Request, req: SignupRequest, db: Session = Depends(get_db)):
    """Регистрация (сразу логинит пользователя)"""
    user = SignupUseCase(db).execute(
        email=req.email,
        password=req.password,
        first_name=req.first_name,
        last_name=req.last_name,
        phone=req.phone,
        city=req.city,
        profession=req.profession,
    )
    request.session["user_id"] = user.id
    return {"user": user_view(user)}


@router.post("/login")
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный email или пароль",
        )
    request.session["user_id"] = user.id
    return {"user": user_view(user)}


@router.post("/logout")
def logout(request: Request):
    """Выход из системы"""
    request.session.clear()
    return {"ok": True}


@router.get("/me")
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Профиль + счётчики"""
    return get_profile(db, user.id)


@router.put("/me")
def update_me(
    req: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UpdateProfileUseCase(db).execute(user.id, **req.model_dump(exclude_unset=True))
    return get_profile(db, user.id)


@router.put("/password")
def change_password(
    req: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ChangePasswordUseCase(db).execute(user.id, req.current_password, req.new_password)
    return {"ok": True}


@router.delete("/me")
def delete_me(
    request: Request,
    req: DeleteAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Удалить пользователя со всеми счетами, операциями, бюджетами и целями"""
    DeleteUserUseCase(db).execute(user.id, req.password)
    request.session.clear()
    return {"ok": True}
