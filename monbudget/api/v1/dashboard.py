"""
Dashboard API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.dashboard import DashboardService
from monbudget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Счета, последние операции, активные бюджеты, цели и сводка месяца"""
    return DashboardService(db).get_summary(user)


@router.get("/stats")
def dashboard_stats(
    period: str = "month",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Быстрая статистика: week / month / year"""
    return DashboardService(db).get_stats(user.id, period)
