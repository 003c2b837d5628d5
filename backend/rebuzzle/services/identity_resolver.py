"""Identity Resolution: maps per-request signals to a user via a fixed priority chain.

Invariants:
    - Order is fixed and short-circuiting: device id -> guest token -> ip hash ->
      local fallback id -> none. Lower layers are never evaluated after a hit
      (the IP is not even hashed)
    - resolve() has no side effects; provisioning on a miss is the caller's job
    - IP layer is skipped when the address is missing or "unknown"
    - Local fallback ids must parse as a UUID AND belong to a guest

Design Decisions:
    - Device id first: app-controlled and hardest to spoof; cookies next (browser-managed);
      IP is shared/rotating, so it is a weak last resort before the client-asserted id
    - extract_client_ip lives here: it produces the signal this module consumes
"""

import logging
from collections.abc import Mapping
from uuid import UUID

from rebuzzle.core.domain_types import (
    GuestToken, IdentifiedBy, IdentitySignals, ResolutionResult, UserId, UserRecord,
)
from rebuzzle.core.ip_hasher import IpHasher
from rebuzzle.core.repository_protocols import UserStore

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


def extract_client_ip(headers: Mapping[str, str], peer: str | None = None) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, CF-Connecting-IP, socket peer."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = (headers.get(header) or "").strip()
        if value:
            return value
    return peer or UNKNOWN_IP


def has_usable_ip(ip_address: str | None) -> bool:
    return bool(ip_address) and ip_address != UNKNOWN_IP


class IdentityResolver:

    def __init__(self, users: UserStore, ip_hasher: IpHasher):
        self.users = users
        self.ip_hasher = ip_hasher

    async def resolve(self, signals: IdentitySignals) -> ResolutionResult:
        if signals.device_id:
            user = await self.users.find_guest_by_device_id(signals.device_id)
            if user:
                return self._hit(user, IdentifiedBy.DEVICE_ID)

        if signals.guest_token:
            user = await self.users.find_by_guest_token(GuestToken(signals.guest_token))
            if user:
                return self._hit(user, IdentifiedBy.GUEST_TOKEN)

        if has_usable_ip(signals.ip_address):
            ip_hash = self.ip_hasher.hash(signals.ip_address)
            user = await self.users.find_guest_by_ip_hash(ip_hash)
            if user:
                return self._hit(user, IdentifiedBy.IP_HASH)

        if signals.local_fallback_id:
            fallback_id = _parse_user_id(signals.local_fallback_id)
            if fallback_id is not None:
                user = await self.users.find_by_id(fallback_id)
                if user and user.is_guest:
                    return self._hit(user, IdentifiedBy.LOCAL_FALLBACK)

        return ResolutionResult(found=False, identified_by=IdentifiedBy.NONE)

    @staticmethod
    def _hit(user: UserRecord, identified_by: IdentifiedBy) -> ResolutionResult:
        logger.debug(
            "Caller resolved",
            extra={"user_id": str(user.id), "identified_by": identified_by.value},
        )
        return ResolutionResult(
            found=True, identified_by=identified_by, user_id=user.id, user=user,
        )


def _parse_user_id(raw: str) -> UserId | None:
    try:
        return UserId(UUID(raw))
    except (ValueError, TypeError):
        return None
