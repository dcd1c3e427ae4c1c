"""
Domain error taxonomy

NotFound    - сущность отсутствует или принадлежит другому пользователю
Conflict    - дубликат имени, пересечение бюджетов, сущность используется
InvalidState - несовпадение знака и статьи, нехватка средств, неверная сумма

Все ошибки - ValueError с машинным кодом (code) и контекстом (details).
"""
from typing import Any


class DomainError(ValueError):
    """Базовая ошибка бизнес-логики"""

    kind = "invalid_state"

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(DomainError):
    kind = "not_found"


class ConflictError(DomainError):
    kind = "conflict"


class InvalidStateError(DomainError):
    kind = "invalid_state"


# === Error codes ===

ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
ACCOUNT_NAME_EXISTS = "ACCOUNT_NAME_EXISTS"
ACCOUNT_HAS_TRANSACTIONS = "ACCOUNT_HAS_TRANSACTIONS"
NEGATIVE_BALANCE = "NEGATIVE_BALANCE"
INVALID_ACCOUNT_TYPE = "INVALID_ACCOUNT_TYPE"

CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
CATEGORY_ALREADY_EXISTS = "CATEGORY_ALREADY_EXISTS"
CATEGORY_IN_USE = "CATEGORY_IN_USE"
CATEGORY_TYPE_MISMATCH = "CATEGORY_TYPE_MISMATCH"

TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
INVALID_AMOUNT = "INVALID_AMOUNT"

BUDGET_NOT_FOUND = "BUDGET_NOT_FOUND"
INVALID_CATEGORY_TYPE = "INVALID_CATEGORY_TYPE"
OVERLAPPING_BUDGET = "OVERLAPPING_BUDGET"
INVALID_BUDGET_WINDOW = "INVALID_BUDGET_WINDOW"
INVALID_BUDGET_PERIOD = "INVALID_BUDGET_PERIOD"

GOAL_NOT_FOUND = "GOAL_NOT_FOUND"
INVALID_CONTRIBUTION_AMOUNT = "INVALID_CONTRIBUTION_AMOUNT"
INVALID_GOAL = "INVALID_GOAL"

USER_NOT_FOUND = "USER_NOT_FOUND"
EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
INVALID_PASSWORD = "INVALID_PASSWORD"
