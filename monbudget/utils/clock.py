"""
Local time helpers ("today" for windows, deadlines and default dates)
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from monbudget.config import get_settings


def now_local() -> datetime:
    """Текущее время в таймзоне приложения (naive, для сравнения с датами из БД)"""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
