"""
Relative date windows used by listings, dashboards and analytics.

    week    -> today - 7 days
    month   -> today - 1 month
    quarter -> today - 3 months
    year    -> today - 1 year
    all     -> no lower bound
"""
import calendar
from datetime import date, timedelta

PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_QUARTER = "quarter"
PERIOD_YEAR = "year"
PERIOD_ALL = "all"

PERIODS = (PERIOD_WEEK, PERIOD_MONTH, PERIOD_QUARTER, PERIOD_YEAR, PERIOD_ALL)

_MONTHS_BACK = {PERIOD_MONTH: 1, PERIOD_QUARTER: 3, PERIOD_YEAR: 12}


def shift_months(d: date, months: int) -> date:
    """
    Сдвинуть дату на N месяцев (отрицательное N - назад).
    День обрезается до последнего дня целевого месяца: 31.03 - 1 мес = 29.02.
    """
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def normalize_period(period: str | None, allow_all: bool = True) -> str:
    """Неизвестный период -> month"""
    if period in PERIODS and (allow_all or period != PERIOD_ALL):
        return period
    return PERIOD_MONTH


def window_start(period: str, today: date) -> date | None:
    """
    Нижняя граница окна (включительно) для периода

    Returns:
        date или None для "all"
    """
    period = normalize_period(period)
    if period == PERIOD_ALL:
        return None
    if period == PERIOD_WEEK:
        return today - timedelta(days=7)
    return shift_months(today, -_MONTHS_BACK[period])


def month_key(d: date) -> str:
    """YYYY-MM"""
    return f"{d.year:04d}-{d.month:02d}"


def month_start(d: date) -> date:
    return d.replace(day=1)
