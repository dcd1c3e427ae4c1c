"""
Tests for goal progress / status rules
"""
from datetime import date, datetime
from decimal import Decimal

from monbudget.domain.goal import (
    goal_progress, deadline_passed, days_remaining,
    GOAL_STATUS_ACTIVE, GOAL_STATUS_COMPLETED, GOAL_STATUS_EXPIRED,
)

NOW = datetime(2026, 10, 17, 12, 0)


def test_half_way_goal_is_active():
    """150 000 + 100 000 взнос = 250 000 из 500 000 -> 50%"""
    result = goal_progress(Decimal("500000"), Decimal("250000"), None, NOW)

    assert result.progress == 50.0
    assert result.remaining == Decimal("250000")
    assert result.is_completed is False
    assert result.status == GOAL_STATUS_ACTIVE
    assert result.time_remaining is None


def test_completed_goal_caps_progress():
    result = goal_progress(Decimal("1000"), Decimal("1500"), date(2026, 1, 1), NOW)

    assert result.progress == 100.0
    assert result.remaining == Decimal("0")
    assert result.is_completed is True
    assert result.status == GOAL_STATUS_COMPLETED
    assert result.time_remaining is None


def test_expired_goal_has_negative_time_remaining():
    result = goal_progress(Decimal("1000"), Decimal("100"), date(2026, 10, 10), NOW)

    assert result.status == GOAL_STATUS_EXPIRED
    assert result.time_remaining == -7


def test_time_remaining_rounds_up():
    """Полдня до дедлайна считается как 1 день"""
    assert days_remaining(date(2026, 10, 18), NOW) == 1
    assert days_remaining(date(2026, 10, 27), NOW) == 10


def test_zero_target_has_zero_progress():
    result = goal_progress(Decimal("0"), Decimal("0"), None, NOW)
    assert result.progress == 0.0
    assert result.is_completed is True


def test_deadline_passed_from_start_of_day():
    assert deadline_passed(date(2026, 10, 17), NOW) is True
    assert deadline_passed(date(2026, 10, 18), NOW) is False
    assert deadline_passed(None, NOW) is False
