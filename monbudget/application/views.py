"""
Plain-dict views of ORM rows (used by use cases, services and API responses)
"""
from monbudget.infrastructure.db.models import Account, Category, Transaction, Budget, Goal, User
from monbudget.domain.transaction import TYPE_INCOME, TYPE_EXPENSE


def account_view(account: Account) -> dict:
    return {
        "id": account.id,
        "name": account.name,
        "bank": account.bank,
        "account_type": account.account_type,
        "balance": account.balance,
        "initial_balance": account.initial_balance,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


def category_view(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "category_type": category.category_type,
        "color": category.color,
    }


def transaction_view(
    tx: Transaction,
    category: Category | None = None,
    account: Account | None = None,
) -> dict:
    """
    Операция + краткая информация о статье и счёте (если переданы)
    """
    data = {
        "id": tx.id,
        "account_id": tx.account_id,
        "category_id": tx.category_id,
        "description": tx.description,
        "amount": tx.amount,
        "type": TYPE_INCOME if tx.amount > 0 else TYPE_EXPENSE,
        "date": tx.date,
        "notes": tx.notes,
        "created_at": tx.created_at,
        "updated_at": tx.updated_at,
    }
    if category is not None:
        data["category_name"] = category.name
        data["category_type"] = category.category_type
        data["category_color"] = category.color
    if account is not None:
        data["account_name"] = account.name
        data["account_type"] = account.account_type
        data["bank"] = account.bank
    return data


def budget_view(budget: Budget, category: Category | None = None) -> dict:
    data = {
        "id": budget.id,
        "category_id": budget.category_id,
        "amount": budget.amount,
        "period": budget.period,
        "start_date": budget.start_date,
        "end_date": budget.end_date,
        "created_at": budget.created_at,
        "updated_at": budget.updated_at,
    }
    if category is not None:
        data["category_name"] = category.name
        data["category_color"] = category.color
    return data


def goal_view(goal: Goal) -> dict:
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "target_amount": goal.target_amount,
        "current_amount": goal.current_amount,
        "deadline": goal.deadline,
        "category": goal.category,
        "created_at": goal.created_at,
        "updated_at": goal.updated_at,
    }


def user_view(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "city": user.city,
        "profession": user.profession,
        "created_at": user.created_at,
    }
