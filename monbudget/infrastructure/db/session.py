"""
Database session management (SQLAlchemy)

Engine/session singletons, the FastAPI `get_db` dependency and the
commit-or-rollback unit used by every write use case.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from monbudget.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


# Singleton engine and session factory
_engine = None
_SessionLocal = None


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite не проверяет FOREIGN KEY без PRAGMA (нужно для локального запуска и тестов)"""
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine() -> Engine:
    """Get or create SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        url = get_settings().get_sqlalchemy_url()
        _engine = create_engine(url, pool_pre_ping=True)
        if _engine.dialect.name == "sqlite":
            enable_sqlite_foreign_keys(_engine)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Iterator[Session]:
    """
    Dependency для FastAPI - создает session и автоматически закрывает

    Usage:
        @router.get("/accounts")
        def list_accounts(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Единица атомарности: всё, что сделано внутри блока, коммитится целиком
    или откатывается целиком (исключение пробрасывается дальше).

    Usage:
        with atomic(self.db):
            ledger.apply_delta(account_id, amount)
            self.db.add(tx)
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def check_db_connection() -> None:
    """
    Health check - проверка доступности БД

    PostgreSQL проверяется raw psycopg-соединением (в обход пула),
    остальные диалекты - через engine.

    Raises:
        psycopg.OperationalError: если PostgreSQL недоступна
    """
    settings = get_settings()
    if settings.DATABASE_URL.startswith("postgresql"):
        dsn = settings.DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
        with psycopg.connect(dsn, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return

    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.debug("Database ping ok (%s)", get_engine().dialect.name)
