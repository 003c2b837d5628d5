"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded for production)
    - get_settings() is cached (lru_cache): single instance per process
    - ip_hash_salt is optional here; IpHasher decides whether its absence is fatal
    - session_secret falls back to DEFAULT_SESSION_SECRET; production refuses it at startup

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

DEFAULT_SESSION_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    environment: str = "development"

    # Database
    database_url: str = (
        "postgresql+asyncpg://rebuzzle:rebuzzle@db:5432/rebuzzle"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms provide postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    store_timeout_seconds: float = 5.0

    # Identity
    ip_hash_salt: str | None = None
    session_secret: str = DEFAULT_SESSION_SECRET
    session_ttl_seconds: int = 60 * 60 * 24 * 7
    guest_token_ttl_seconds: int = 60 * 60 * 24 * 365
    guest_token_cookie: str = "rebuzzle_guest_token"
    auth_cookie: str = "rebuzzle_auth"

    # Anthropic (semantic answer equivalence)
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_model: str = "claude-haiku-4-5"
    anthropic_max_retries: int = 2
    anthropic_timeout_seconds: int = 10
    anthropic_base_delay_ms: int = 250
    anthropic_max_delay_ms: int = 2_000

    semantic_validation_enabled: bool = False
    semantic_min_similarity: float = 0.3
    semantic_timeout_seconds: float = 5.0

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
