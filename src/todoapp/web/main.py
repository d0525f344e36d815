"""FastAPI application factory for the front-end tier.

Learn: Same shape as the API factory — lifespan, middleware stack, error
handlers, routers — but with no database. The front-end owns the session
cookie and a shared httpx client to the API; every data operation is
forwarded there with the session's bearer token.

The front-end runs its own admission filter with its own store: callers
are throttled at whichever tier they reach first.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import Depends, FastAPI

from todoapp import __version__
from todoapp.config import settings
from todoapp.errors import install_error_handlers
from todoapp.log import configure_logging
from todoapp.middleware.stack import install_middleware
from todoapp.ratelimit import build_limiter
from todoapp.web.account import router as account_router
from todoapp.web.api_client import ApiClient
from todoapp.web.proxy import router as proxy_router
from todoapp.web.session import WebSession, get_optional_session

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "todoapp.starting",
        tier="web",
        version=__version__,
        environment=settings.environment,
        port=settings.web_port,
        api_base_url=settings.api_base_url,
    )

    yield

    logger.info("todoapp.shutdown", tier="web")
    await app.state.api_client.aclose()
    await app.state.rate_limiter.store.close()


def create_web_app(api_client: Optional[ApiClient] = None) -> FastAPI:
    """Build and return the front-end application.

    api_client can be injected (tests point it at the API app in-process);
    by default it talks HTTP to settings.api_base_url.
    """
    configure_logging(settings.log_level)

    app = FastAPI(
        title="TodoApp Web",
        description="Browser-facing tier: session cookie and API pass-through",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.rate_limiter = build_limiter(settings)
    app.state.api_client = api_client or ApiClient(
        httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout_seconds,
        )
    )

    # Browser-facing and same-origin: no CORS
    install_middleware(app, settings, app.state.rate_limiter)

    install_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "tier": "web", "version": __version__}

    @app.get("/")
    async def home(session: Optional[WebSession] = Depends(get_optional_session)):
        """Who is signed in, if anyone."""
        if session is None:
            return {"authenticated": False}
        identity = session.identity
        return {
            "authenticated": True,
            "name": identity.name,
            "email": identity.email,
            "roles": list(identity.roles),
            "is_admin": identity.is_admin,
        }

    app.include_router(account_router, tags=["account"])
    app.include_router(proxy_router, tags=["webapi"])

    return app


# Default app instance (used by uvicorn: todoapp.web.main:app)
app = create_web_app()
