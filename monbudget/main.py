"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from monbudget.config import get_settings
from monbudget.application.errors import DomainError
from monbudget.infrastructure.db.session import check_db_connection
from monbudget.api.v1 import auth, accounts, categories, transactions, budgets, goals, dashboard, analytics

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Вид ошибки бизнес-логики -> HTTP статус
ERROR_STATUS = {
    "not_found": 404,
    "conflict": 409,
    "invalid_state": 400,
}


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Ловит ВСЕ необработанные исключения (в т.ч. из sync routes) -> 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return Response(content="Internal Server Error", status_code=500)


def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """{"error", "code", "details"}"""
    status_code = ERROR_STATUS.get(exc.kind, 400)
    logger.warning(
        "%s %s rejected: %s (%s) %s",
        request.method, request.url.path, exc.code, exc.message, exc.details,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


def create_app() -> FastAPI:
    """
    Application factory - создаёт и настраивает FastAPI приложение

    Returns:
        Настроенный FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="MonBudget",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    app.add_exception_handler(DomainError, domain_error_handler)

    # Routers
    app.include_router(auth.router)
    app.include_router(accounts.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(budgets.router)
    app.include_router(goals.router)
    app.include_router(dashboard.router)
    app.include_router(analytics.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (проверяет доступность БД)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "monbudget.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
