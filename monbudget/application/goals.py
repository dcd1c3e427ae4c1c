"""
Goal use cases - цели накопления

Статус цели производный (не хранится):
    completed - current >= target
    expired   - дедлайн прошёл и цель не достигнута
    active    - иначе
Взнос увеличивает current_amount атомарным UPDATE.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from monbudget.application.errors import (
    NotFoundError, InvalidStateError,
    GOAL_NOT_FOUND, INVALID_CONTRIBUTION_AMOUNT, INVALID_GOAL,
)
from monbudget.application.views import goal_view
from monbudget.domain.goal import GOAL_STATUSES, goal_progress
from monbudget.infrastructure.db.models import Goal
from monbudget.infrastructure.db.session import atomic
from monbudget.utils.clock import now_local, today_local
from monbudget.utils.money import to_money

logger = logging.getLogger(__name__)


def _get_owned(db: Session, owner_id: int, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(
        Goal.id == goal_id,
        Goal.owner_id == owner_id,
    ).first()
    if not goal:
        raise NotFoundError(GOAL_NOT_FOUND, "Цель не найдена", {"goal_id": goal_id})
    return goal


def goal_with_progress(goal: Goal, now: datetime | None = None) -> dict:
    """Цель + progress, remaining, is_completed, status, time_remaining"""
    progress = goal_progress(
        to_money(goal.target_amount),
        to_money(goal.current_amount),
        goal.deadline,
        now or now_local(),
    )
    return {**goal_view(goal), **progress.as_dict()}


def _validate_amounts(target_amount: Decimal, current_amount: Decimal) -> None:
    if target_amount <= 0:
        raise InvalidStateError(
            INVALID_GOAL, "Целевая сумма должна быть больше нуля", {"target_amount": target_amount}
        )
    if current_amount < 0:
        raise InvalidStateError(
            INVALID_GOAL, "Накопленная сумма не может быть отрицательной", {"current_amount": current_amount}
        )


class CreateGoalUseCase:
    """Use case: Создать цель накопления"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        owner_id: int,
        title: str,
        target_amount: Decimal,
        category: str,
        current_amount: Decimal = Decimal("0"),
        deadline=None,
        description: str | None = None,
    ) -> Goal:
        title = title.strip()
        if not title:
            raise InvalidStateError(INVALID_GOAL, "Название цели не может быть пустым")
        target_amount = to_money(target_amount)
        current_amount = to_money(current_amount)
        _validate_amounts(target_amount, current_amount)
        if deadline is not None and deadline <= today_local():
            raise InvalidStateError(
                INVALID_GOAL, "Срок цели должен быть в будущем", {"deadline": deadline}
            )

        goal = Goal(
            owner_id=owner_id,
            title=title,
            description=description,
            target_amount=target_amount,
            current_amount=current_amount,
            deadline=deadline,
            category=category.strip(),
        )
        with atomic(self.db):
            self.db.add(goal)
            self.db.flush()

        logger.info("Goal created: id=%s owner=%s target=%s", goal.id, owner_id, target_amount)
        return goal


class UpdateGoalUseCase:
    """
    Use case: Изменить цель

    Дедлайн при изменении может быть в прошлом (цель станет expired).
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, goal_id: int, **changes) -> Goal:
        goal = _get_owned(self.db, owner_id, goal_id)

        target_amount = (
            to_money(changes["target_amount"]) if changes.get("target_amount") is not None
            else to_money(goal.target_amount)
        )
        current_amount = (
            to_money(changes["current_amount"]) if changes.get("current_amount") is not None
            else to_money(goal.current_amount)
        )
        _validate_amounts(target_amount, current_amount)

        with atomic(self.db):
            if changes.get("title") is not None:
                title = changes["title"].strip()
                if not title:
                    raise InvalidStateError(INVALID_GOAL, "Название цели не может быть пустым")
                goal.title = title
            if "description" in changes:
                goal.description = changes["description"]
            if "deadline" in changes:
                goal.deadline = changes["deadline"]
            if changes.get("category") is not None:
                goal.category = changes["category"].strip()
            goal.target_amount = target_amount
            goal.current_amount = current_amount

        logger.info("Goal updated: id=%s owner=%s", goal_id, owner_id)
        return goal


class DeleteGoalUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, goal_id: int) -> None:
        goal = _get_owned(self.db, owner_id, goal_id)
        with atomic(self.db):
            self.db.delete(goal)
        logger.info("Goal deleted: id=%s owner=%s", goal_id, owner_id)


class ContributeToGoalUseCase:
    """
    Use case: Взнос в цель

    current_amount = current_amount + :amount одним UPDATE.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, owner_id: int, goal_id: int, amount: Decimal) -> dict:
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidStateError(
                INVALID_CONTRIBUTION_AMOUNT,
                "Сумма взноса должна быть больше нуля",
                {"amount": amount},
            )

        with atomic(self.db):
            goal = _get_owned(self.db, owner_id, goal_id)
            self.db.execute(
                update(Goal)
                .where(Goal.id == goal.id)
                .values(current_amount=Goal.current_amount + amount, updated_at=func.now())
                .execution_options(synchronize_session="fetch")
            )

        self.db.refresh(goal)
        logger.info("Goal contribution: id=%s owner=%s amount=%s", goal_id, owner_id, amount)
        return {"goal": goal_with_progress(goal), "contribution": amount}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_goal(db: Session, owner_id: int, goal_id: int, now: datetime | None = None) -> dict:
    return goal_with_progress(_get_owned(db, owner_id, goal_id), now)


def list_goals(
    db: Session,
    owner_id: int,
    status: str | None = None,
    category: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """
    Цели владельца: дедлайн asc (без дедлайна - в конце), затем created desc

    status фильтруется по производному статусу (active / completed / expired).
    """
    now = now or now_local()
    query = db.query(Goal).filter(Goal.owner_id == owner_id)
    if category:
        query = query.filter(Goal.category == category)

    goals = query.order_by(
        Goal.deadline.is_(None),
        Goal.deadline.asc(),
        Goal.created_at.desc(),
        Goal.id.desc(),
    ).all()

    views = [goal_with_progress(goal, now) for goal in goals]
    if status in GOAL_STATUSES:
        views = [view for view in views if view["status"] == status]
    return views
