"""
FastAPI application factory.

create_app() builds and configures the application from one Settings
object:
  1. Logging: routes every user_service.* logger to the console
  2. Database engine and session factory, kept on app.state
  3. Token issuer, kept on app.state
  4. Lifespan manager: creates tables on startup, disposes the engine on
     shutdown
  5. Middleware: request logging and CORS
  6. Exception handlers: maps domain errors to HTTP responses
  7. Router registration

Running locally:
    uvicorn user_service.main:create_app --factory --reload

or, using HOST/PORT from the settings:
    python -m user_service
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from user_service import models  # noqa: F401  (registers tables on Base.metadata)
from user_service.config import Settings
from user_service.database import Base, create_engine, create_session_factory
from user_service.exceptions import register_exception_handlers
from user_service.logging_config import configure_logging
from user_service.middleware import RequestLoggingMiddleware
from user_service.routers import users
from user_service.schemas.common import ok
from user_service.security import TokenIssuer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Creates all database tables if they don't exist. This keeps local
      development to a single command; a production deployment would run
      versioned migrations instead.

    Shutdown:
      Disposes of the database engine, closing all pooled connections.
    """
    # --- Startup ---
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "%s %s started in %s mode",
        app.state.settings.APP_NAME, app.state.settings.APP_VERSION,
        app.state.settings.APP_MODE,
    )
    yield
    # --- Shutdown ---
    await app.state.engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        settings = Settings()

    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="User management REST API: registration, login, profiles and admin",
        lifespan=lifespan,
        debug=settings.debug,
    )

    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.token_issuer = TokenIssuer.from_settings(settings)

    # ---------------------------------------------------------------------------
    # Middleware
    # ---------------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
    # Added last so it wraps everything else and sees the final status code
    app.add_middleware(RequestLoggingMiddleware)

    # ---------------------------------------------------------------------------
    # Exception handlers
    # ---------------------------------------------------------------------------

    register_exception_handlers(app)

    # ---------------------------------------------------------------------------
    # Routers
    # ---------------------------------------------------------------------------

    app.include_router(users.router, prefix="/users", tags=["Users"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint for deployment probes.

        Returns a simple JSON response indicating the service is running.
        """
        return ok({"status": "ok", "version": settings.APP_VERSION})

    return app
