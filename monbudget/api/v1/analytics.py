"""
Analytics API endpoints (read-only)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monbudget.api.deps import get_db, get_current_user
from monbudget.application.analytics import AnalyticsService
from monbudget.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("")
def analytics_summary(
    period: str = "month",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Итоги периода: week / month / quarter / year / all"""
    return AnalyticsService(db).summary(user.id, period)


@router.get("/budgets")
def analytics_budgets(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return AnalyticsService(db).budgets(user.id)


@router.get("/goals")
def analytics_goals(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return AnalyticsService(db).goals(user.id)


@router.get("/insights")
def analytics_insights(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Тренды, прогноз расходов и подсказки"""
    return AnalyticsService(db).insights(user.id)
