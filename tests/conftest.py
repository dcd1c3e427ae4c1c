"""
Pytest fixtures for testing
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from monbudget.infrastructure.db import models  # noqa: F401
from monbudget.infrastructure.db.models import Category, User
from monbudget.infrastructure.db.session import Base, enable_sqlite_foreign_keys, get_db
from monbudget.application.accounts import CreateAccountUseCase
from monbudget.application.budgets import CreateBudgetUseCase
from monbudget.application.categories import EnsureDefaultCategoriesUseCase
from monbudget.application.goals import CreateGoalUseCase, UpdateGoalUseCase
from monbudget.application.transactions import CreateTransactionUseCase
from monbudget.auth import hash_password


@pytest.fixture
def db_engine():
    """In-memory SQLite (одно соединение на тест, FOREIGN KEY включены)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def _make_user(db: Session, email: str) -> User:
    user = User(
        email=email,
        password_hash=hash_password("secret123"),
        first_name="Awa",
        last_name="Diop",
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def owner(db_session) -> User:
    return _make_user(db_session, "awa@example.com")


@pytest.fixture
def other_owner(db_session) -> User:
    return _make_user(db_session, "moussa@example.com")


@pytest.fixture
def categories(db_session) -> dict[str, Category]:
    """Базовый справочник статей: {name: Category}"""
    EnsureDefaultCategoriesUseCase(db_session).execute()
    return {c.name: c for c in db_session.query(Category).all()}


@pytest.fixture
def make_account(db_session, owner):
    """Фабрика счетов владельца: make_account("Main", balance="100000", account_type="checking")"""
    counter = {"n": 0}

    def _make(name: str | None = None, balance="0", account_type: str = "checking", owner_id: int | None = None):
        counter["n"] += 1
        return CreateAccountUseCase(db_session).execute(
            owner_id=owner_id or owner.id,
            name=name or f"Account {counter['n']}",
            bank="CBAO",
            account_type=account_type,
            balance=Decimal(str(balance)),
        )

    return _make


@pytest.fixture
def client(session_factory):
    """TestClient с get_db, указывающим на тестовую БД"""
    from monbudget.main import app

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    """Клиент с зарегистрированным и залогиненным пользователем"""
    response = client.post("/api/v1/auth/signup", json={
        "email": "fatou@example.com",
        "password": "secret123",
        "first_name": "Fatou",
        "last_name": "Sow",
    })
    assert response.status_code == 201
    return client


@pytest.fixture
def household(db_session, owner, categories, make_account):
    """
    Main (checking, 2 000 000) и Wave (savings, 100 000):

        2026-05-10  Salary     +400 000  Main
        2026-08-10  Food        -40 000  Main   (пн)
        2026-09-14  Food        -50 000  Main   (пн)
        2026-09-30  Salary     +400 000  Main
        2026-10-12  Food        -30 000  Main   (пн)
        2026-10-13  Transport   -10 000  Wave   (вт)
        2026-10-13  Freelance   +50 000  Wave

    Бюджет Food на октябрь 20 000 (превышен), две цели: выполненная
    и активная со сроком 2026-11-01.
    """
    main = make_account(name="Main", balance="2000000")
    wave = make_account(name="Wave", balance="100000", account_type="savings")

    create = CreateTransactionUseCase(db_session).execute
    for account, category, amount, tx_date in [
        (main, "Salary", "400000", date(2026, 5, 10)),
        (main, "Food", "-40000", date(2026, 8, 10)),
        (main, "Food", "-50000", date(2026, 9, 14)),
        (main, "Salary", "400000", date(2026, 9, 30)),
        (main, "Food", "-30000", date(2026, 10, 12)),
        (wave, "Transport", "-10000", date(2026, 10, 13)),
        (wave, "Freelance", "50000", date(2026, 10, 13)),
    ]:
        create(
            owner_id=owner.id,
            account_id=account.id,
            category_id=categories[category].id,
            amount=Decimal(amount),
            tx_date=tx_date,
            description=category,
        )

    budget = CreateBudgetUseCase(db_session).execute(
        owner.id, categories["Food"].id, Decimal("20000"), "monthly",
        date(2026, 10, 1), date(2026, 10, 31),
    )

    goals = CreateGoalUseCase(db_session)
    done = goals.execute(
        owner.id, "Fonds d'urgence", Decimal("100000"), "safety", current_amount=Decimal("100000")
    )
    trip = goals.execute(
        owner.id, "Tabaski", Decimal("300000"), "family",
        current_amount=Decimal("50000"), deadline=date(2099, 1, 1),
    )
    # CreateGoalUseCase требует срок позже реального сегодня
    UpdateGoalUseCase(db_session).execute(owner.id, trip.id, deadline=date(2026, 11, 1))

    return {"main": main, "wave": wave, "budget": budget, "done": done, "trip": trip}
