"""API tier application.

Learn: create_app() builds the JSON API: the shared middleware stack,
error handlers and the /api routers. The lifespan creates the schema and
seeds roles and the admin account on startup, and releases the
rate-limit store and database pool on shutdown.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from todoapp import __version__
from todoapp.api import api_router
from todoapp.config import settings
from todoapp.db.engine import engine
from todoapp.db.init_db import init_db
from todoapp.errors import install_error_handlers
from todoapp.log import configure_logging
from todoapp.middleware.stack import install_middleware
from todoapp.ratelimit import build_limiter

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "todoapp.starting",
        tier="api",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        rate_limit_backend=settings.rate_limit_backend,
    )
    await init_db(engine, settings.admin_email, settings.admin_password)

    yield

    logger.info("todoapp.shutdown", tier="api")
    await app.state.rate_limiter.store.close()
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="TodoApp API",
        description="To-do list API with JWT authentication and role-based user management",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.rate_limiter = build_limiter(settings)

    install_middleware(
        app, settings, app.state.rate_limiter, cors_origins=settings.cors_origins
    )
    install_error_handlers(app)
    app.include_router(api_router)

    return app


# uvicorn todoapp.main:app
app = create_app()
