"""
Goal domain rules - progress, status and time remaining for savings goals
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

GOAL_STATUS_ACTIVE = "active"
GOAL_STATUS_COMPLETED = "completed"
GOAL_STATUS_EXPIRED = "expired"

GOAL_STATUSES = (GOAL_STATUS_ACTIVE, GOAL_STATUS_COMPLETED, GOAL_STATUS_EXPIRED)

_ZERO = Decimal("0")
_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class GoalProgress:
    """
    Производные показатели цели (не хранятся, считаются на лету)
    """
    progress: float
    remaining: Decimal
    is_completed: bool
    status: str
    time_remaining: int | None  # дни, может быть < 0

    def as_dict(self) -> dict:
        return {
            "progress": self.progress,
            "remaining": self.remaining,
            "is_completed": self.is_completed,
            "status": self.status,
            "time_remaining": self.time_remaining,
        }


def deadline_passed(deadline: date | None, now: datetime) -> bool:
    """Дедлайн считается наступившим с начала дня дедлайна"""
    if deadline is None:
        return False
    return datetime.combine(deadline, time.min) < now


def days_remaining(deadline: date, now: datetime) -> int:
    """ceil((deadline - now) / 1 день)"""
    delta = datetime.combine(deadline, time.min) - now
    return math.ceil(delta / _ONE_DAY)


def goal_progress(
    target_amount: Decimal,
    current_amount: Decimal,
    deadline: date | None,
    now: datetime,
) -> GoalProgress:
    """
    Посчитать прогресс цели

    Args:
        target_amount: Целевая сумма
        current_amount: Накоплено
        deadline: Срок (опционально)
        now: Текущий момент (naive, локальное время)

    Example:
        >>> goal_progress(Decimal("500000"), Decimal("250000"), None, datetime.now()).progress
        50.0
    """
    if target_amount > 0:
        progress = min(Decimal(100), current_amount / target_amount * 100)
    else:
        progress = _ZERO

    is_completed = current_amount >= target_amount

    if is_completed:
        status = GOAL_STATUS_COMPLETED
    elif deadline_passed(deadline, now):
        status = GOAL_STATUS_EXPIRED
    else:
        status = GOAL_STATUS_ACTIVE

    time_remaining = None
    if deadline is not None and not is_completed:
        time_remaining = days_remaining(deadline, now)

    return GoalProgress(
        progress=round(float(progress), 2),
        remaining=max(_ZERO, target_amount - current_amount),
        is_completed=is_completed,
        status=status,
        time_remaining=time_remaining,
    )
