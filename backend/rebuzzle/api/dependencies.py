"""Request Dependencies: per-request construction of stores and services.

Invariants:
    - Long-lived handles (db manager, ip hasher, token issuer, answer checker) are read
      from app.state, which the lifespan (or a test fixture) populates explicitly
    - Stores are built per request around the request's AsyncSession
    - get_current_user_id accepts a bearer token first, then the auth cookie

Design Decisions:
    - FastAPI Depends chain over service locators: overridable in tests
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from rebuzzle.config import Settings, get_settings
from rebuzzle.core.domain_types import UserId
from rebuzzle.core.errors import AuthenticationError
from rebuzzle.core.ip_hasher import IpHasher
from rebuzzle.infrastructure.database import get_db
from rebuzzle.infrastructure.session_tokens import SessionTokenIssuer
from rebuzzle.infrastructure.sql_stores import (
    SqlAttemptStore, SqlStatsStore, SqlUserStore,
)
from rebuzzle.services.answer_checker import AnswerChecker
from rebuzzle.services.attempt_gate import AttemptGate
from rebuzzle.services.guest_provisioner import GuestAccountProvisioner
from rebuzzle.services.identity_resolver import IdentityResolver

_bearer = HTTPBearer(auto_error=False)


def get_ip_hasher(request: Request) -> IpHasher:
    return request.app.state.ip_hasher


def get_token_issuer(request: Request) -> SessionTokenIssuer:
    return request.app.state.token_issuer


def get_answer_checker(request: Request) -> AnswerChecker:
    return request.app.state.answer_checker


def get_user_store(
    db: AsyncSession = Depends(get_db), settings: Settings = Depends(get_settings),
) -> SqlUserStore:
    return SqlUserStore(db, settings.store_timeout_seconds)


def get_stats_store(
    db: AsyncSession = Depends(get_db), settings: Settings = Depends(get_settings),
) -> SqlStatsStore:
    return SqlStatsStore(db, settings.store_timeout_seconds)


def get_attempt_store(
    db: AsyncSession = Depends(get_db), settings: Settings = Depends(get_settings),
) -> SqlAttemptStore:
    return SqlAttemptStore(db, settings.store_timeout_seconds)


def get_identity_resolver(
    users: SqlUserStore = Depends(get_user_store),
    ip_hasher: IpHasher = Depends(get_ip_hasher),
) -> IdentityResolver:
    return IdentityResolver(users, ip_hasher)


def get_provisioner(
    users: SqlUserStore = Depends(get_user_store),
    stats: SqlStatsStore = Depends(get_stats_store),
    tokens: SessionTokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> GuestAccountProvisioner:
    return GuestAccountProvisioner(
        users, stats, tokens, settings.guest_token_ttl_seconds,
    )


def get_attempt_gate(
    attempts: SqlAttemptStore = Depends(get_attempt_store),
) -> AttemptGate:
    return AttemptGate(attempts)


def get_current_user_id(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    tokens: SessionTokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> UserId:
    token = creds.credentials if creds else request.cookies.get(settings.auth_cookie)
    if not token:
        raise AuthenticationError()
    return tokens.verify(token)
