import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.core.config import Settings, settings as default_settings
from app.core.dependencies import get_engine
from app.core.errors import (
    ErrorReporterMiddleware,
    UsersAPIError,
    request_validation_exception_handler,
    users_api_exception_handler,
)
from app.core.logging import configure_logging
from app.db.base import create_db_engine, ensure_schema
from app.routers import users as users_router
from app.schemas.common import Envelope

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application.

    When `engine` is given the app uses it as its connection pool and leaves
    disposing it to the caller; otherwise one is built from `settings` at
    startup and disposed at shutdown.
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_engine = engine is None
        app.state.engine = create_db_engine(settings) if owns_engine else engine
        ensure_schema(app.state.engine)
        logger.info("Users API started (env=%s)", settings.APP_ENV)
        yield
        if owns_engine:
            app.state.engine.dispose()
        logger.info("Users API stopped")

    app = FastAPI(
        title="Users API",
        description=(
            "CRUD service for a single `User` resource.\n\n"
            "Successful responses use the `{status, message, data}` envelope; "
            "client errors use `{status, message, errors}` and unexpected "
            "failures `{status, message, error}`."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # --- Middleware (the error reporter must wrap the routes) ---
    app.add_middleware(ErrorReporterMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Exception handlers (client errors only; faults go to the middleware) ---
    app.add_exception_handler(UsersAPIError, users_api_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # --- Routers ---
    app.include_router(users_router.router, prefix="/api")

    @app.get("/", response_model=Envelope, tags=["health"], summary="Service banner")
    def root():
        return Envelope(status=200, message="Users API is running")

    @app.get("/health", tags=["health"], summary="Health check")
    def health(engine: Engine = Depends(get_engine)):
        """
        Returns `{"status": "ok", "db": "ok"}` when both the API and the database
        are reachable. Returns HTTP 503 if the DB is down.
        """
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.warning("Health check could not reach the database", exc_info=True)
            return JSONResponse(
                status_code=503,
                content={"status": "error", "db": "unreachable"},
            )
        return {"status": "ok", "db": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
