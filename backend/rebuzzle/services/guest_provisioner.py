"""Guest Provisioning: creates an anonymous user, zeroed stats, and its credentials.

Invariants:
    - Guest tokens come from `secrets` (cryptographically random, URL-safe)
    - The user insert is a unique-constrained insert-if-absent; a lost race is retried
      ONCE as a lookup (device id, then ip hash, then token) and returns the winner
    - Both racers end with the same user id and the winner's guest token
    - Stats creation is itself insert-if-absent, so a retried provision never duplicates it

Design Decisions:
    - Lookup-on-conflict over locks: request handlers may run on separate instances,
      only the store's unique constraints are shared (ADR: no application-level locks)
    - Credentials derived here, transported elsewhere: cookie writing is an HTTP concern
"""

import logging
import secrets
from datetime import datetime, timezone
from uuid import uuid4

from rebuzzle.core.domain_types import (
    GuestCredentials, GuestToken, IpHash, ProvisionResult, UserId, UserRecord,
)
from rebuzzle.core.errors import UniqueViolationError
from rebuzzle.core.repository_protocols import StatsStore, UserStore
from rebuzzle.infrastructure.session_tokens import SessionTokenIssuer

logger = logging.getLogger(__name__)

GUEST_TOKEN_BYTES = 32


def new_guest_token() -> GuestToken:
    return GuestToken(secrets.token_urlsafe(GUEST_TOKEN_BYTES))


def new_guest_username() -> str:
    return f"Player{1000 + secrets.randbelow(9000)}"


class GuestAccountProvisioner:

    def __init__(
        self,
        users: UserStore,
        stats: StatsStore,
        tokens: SessionTokenIssuer,
        guest_token_ttl_seconds: int,
    ):
        self.users = users
        self.stats = stats
        self.tokens = tokens
        self.guest_token_ttl_seconds = guest_token_ttl_seconds

    async def provision(
        self, device_id: str | None = None, ip_hash: IpHash | None = None,
    ) -> ProvisionResult:
        candidate = UserRecord(
            id=UserId(uuid4()),
            is_guest=True,
            username=new_guest_username(),
            guest_token=new_guest_token(),
            device_id=device_id,
            ip_hash=ip_hash,
            created_at=datetime.now(timezone.utc),
        )
        try:
            user = await self.users.insert_if_absent(candidate)
            created = True
        except UniqueViolationError:
            user = await self._find_winner(candidate)
            if user is None:
                raise
            created = False
            logger.info(
                "Guest provisioning lost a race; reusing existing guest",
                extra={"user_id": str(user.id)},
            )

        await self.stats.create_zeroed_stats(user.id)
        if created:
            logger.info("Guest account created", extra={"user_id": str(user.id)})
        return ProvisionResult(
            user=user, credentials=self.credentials_for(user), created=created,
        )

    def credentials_for(self, user: UserRecord) -> GuestCredentials:
        """Fresh session credential for an existing guest (token unchanged)."""
        return GuestCredentials(
            guest_token=user.guest_token,
            session_token=self.tokens.issue(user.id, is_guest=user.is_guest),
            guest_token_max_age=self.guest_token_ttl_seconds,
            session_max_age=self.tokens.ttl_seconds,
        )

    async def _find_winner(self, candidate: UserRecord) -> UserRecord | None:
        if candidate.device_id:
            user = await self.users.find_guest_by_device_id(candidate.device_id)
            if user:
                return user
        if candidate.ip_hash:
            user = await self.users.find_guest_by_ip_hash(candidate.ip_hash)
            if user:
                return user
        return await self.users.find_by_guest_token(candidate.guest_token)
