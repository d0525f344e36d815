"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TODOAPP_ prefix.
Both tiers (API and front-end) read the same Settings object.

Learn: Settings are loaded once at import time. A missing or weak signing
secret is a startup failure (ConfigurationError), never a per-request error,
so a misconfigured process cannot serve traffic.
"""

from typing import Optional

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings

from todoapp.errors import ConfigurationError

MIN_SECRET_LENGTH = 32

# Tokens are signed and verified with one shared secret
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """All app configuration. Set via TODOAPP_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./todoapp.db"

    # Auth
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 120
    password_hash_rounds: int = 12

    # Seeded admin account (skipped when admin_password is empty)
    admin_email: str = "admin@todoapp.com"
    admin_password: str = ""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    web_port: int = 8001
    log_level: str = "INFO"

    # CORS (the front-end tier is the only browser-facing client)
    cors_origins: list[str] = [
        "http://localhost:8001",
    ]

    # Rate limiting (admission filter)
    rate_limit_requests: int = 60  # per window, per caller and path
    rate_limit_window_seconds: int = 60
    rate_limit_block_seconds: int = 300
    rate_limit_idle_ttl_seconds: int = 300
    rate_limit_fail_open: bool = True  # callers without an address bypass the filter
    rate_limit_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"

    # Front-end tier
    api_base_url: str = "http://localhost:8000"
    api_timeout_seconds: float = 30.0
    session_secret: str = ""  # falls back to jwt_secret
    session_cookie_name: str = "todoapp_session"
    session_cookie_secure: Optional[bool] = None  # derived from environment when unset

    model_config = {"env_prefix": "TODOAPP_"}

    @model_validator(mode="after")
    def validate_secrets(self):
        """Refuse to start without a usable signing secret."""
        if not self.jwt_secret:
            raise ValueError(
                "TODOAPP_JWT_SECRET must be set. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        if len(self.jwt_secret) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"TODOAPP_JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters"
            )
        if self.jwt_algorithm not in HMAC_ALGORITHMS:
            raise ValueError(
                f"TODOAPP_JWT_ALGORITHM must be one of {', '.join(HMAC_ALGORITHMS)}"
            )
        if self.session_secret and len(self.session_secret) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"TODOAPP_SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters"
            )
        if self.rate_limit_backend not in ("memory", "redis"):
            raise ValueError("TODOAPP_RATE_LIMIT_BACKEND must be 'memory' or 'redis'")
        return self

    @property
    def effective_session_secret(self) -> str:
        return self.session_secret or self.jwt_secret

    @property
    def cookie_secure(self) -> bool:
        if self.session_cookie_secure is not None:
            return self.session_cookie_secure
        return self.environment != "development"


def load_settings(**overrides) -> Settings:
    """Build Settings, converting validation failures into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


# Singleton, import this everywhere
settings = load_settings()
