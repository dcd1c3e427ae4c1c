"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from monbudget.infrastructure.db.session import get_db as _get_db
from monbudget.infrastructure.db.models import User


# Re-export get_db для удобства
get_db = _get_db


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """
    Текущий пользователь из session или None (без ошибки)

    Usage:
        @router.get("/")
        def index(user: User | None = Depends(get_optional_user)):
            ...
    """
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    """
    Получить текущего пользователя из session (для API endpoints)

    Raises:
        HTTPException(401): если не залогинен
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user

