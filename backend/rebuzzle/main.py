"""Rebuzzle API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map RebuzzleError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Long-lived handles are built in configure_state and stored on app.state;
      nothing store-related lives in module globals
    - Production startup fails fast when IP_HASH_SALT is missing or SESSION_SECRET
      is still the default

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - configure_state shared by lifespan and test fixtures (ASGITransport skips lifespan)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rebuzzle.api.error_handlers import register_error_handlers
from rebuzzle.api.routes import answers, attempts, guest_session, health
from rebuzzle.config import DEFAULT_SESSION_SECRET, Settings, get_settings
from rebuzzle.core.errors import SessionSecretMissingError
from rebuzzle.core.ip_hasher import IpHasher
from rebuzzle.core.repository_protocols import SemanticEquivalenceService
from rebuzzle.infrastructure.anthropic_client import ResilientAnthropicClient
from rebuzzle.infrastructure.database import DatabaseSessionManager
from rebuzzle.infrastructure.observability import setup_logging
from rebuzzle.infrastructure.semantic_judge import AnthropicSemanticJudge
from rebuzzle.infrastructure.session_tokens import SessionTokenIssuer
from rebuzzle.services.answer_checker import AnswerChecker

logger = logging.getLogger(__name__)


def build_semantic_judge(settings: Settings) -> SemanticEquivalenceService | None:
    if not settings.semantic_validation_enabled:
        return None
    client = ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    return AnthropicSemanticJudge(client, settings.anthropic_model)


def configure_state(
    app: FastAPI,
    settings: Settings,
    db_manager: DatabaseSessionManager,
    judge: SemanticEquivalenceService | None = None,
) -> None:
    """Attach every long-lived handle the request dependencies read."""
    ip_hasher = IpHasher(settings.ip_hash_salt, settings.environment)
    ip_hasher.ensure_configured()
    if settings.is_production and settings.session_secret in ("", DEFAULT_SESSION_SECRET):
        raise SessionSecretMissingError()
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.ip_hasher = ip_hasher
    app.state.token_issuer = SessionTokenIssuer(
        settings.session_secret, settings.session_ttl_seconds,
    )
    app.state.answer_checker = AnswerChecker(
        judge,
        min_similarity=settings.semantic_min_similarity,
        timeout_seconds=settings.semantic_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_manager = DatabaseSessionManager.from_url(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    configure_state(app, settings, db_manager, build_semantic_judge(settings))
    logger.info("Rebuzzle API started")
    yield
    await db_manager.dispose()
    logger.info("Rebuzzle API shutting down")


app = FastAPI(
    title="Rebuzzle Core API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(guest_session.router)
app.include_router(attempts.router)
app.include_router(answers.router)

register_error_handlers(app)
