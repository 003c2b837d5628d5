"""IP Hashing: salted one-way digest of a caller's IP for privacy-safe guest lookup.

Invariants:
    - hash_ip is PURE and deterministic: same (ip, salt) always yields the same digest
    - Production without an operator salt raises IpHashSaltMissingError at the hash call site
    - Non-production falls back to DEV_SALT and logs a WARNING once per hasher
    - The raw IP is never logged, stored, or echoed in an error

Design Decisions:
    - SHA-256 over "salt:ip": cheap, one-way, no key management beyond the salt
    - Rotating the salt is the invalidation mechanism for every IP-based lookup
"""

import hashlib
import logging

from rebuzzle.core.domain_types import IpHash
from rebuzzle.core.errors import IpHashSaltMissingError

logger = logging.getLogger(__name__)

DEV_SALT: str = "dev-only-salt"
PRODUCTION: str = "production"


def hash_ip(ip: str, salt: str) -> IpHash:
    """Hex SHA-256 of f"{salt}:{ip}"."""
    return IpHash(hashlib.sha256(f"{salt}:{ip}".encode("utf-8")).hexdigest())


class IpHasher:
    """Binds hash_ip to the configured salt and environment."""

    def __init__(self, salt: str | None, environment: str = "development"):
        self._salt = salt or None
        self._production = environment.lower() == PRODUCTION
        self._warned = False

    @property
    def is_configured(self) -> bool:
        return self._salt is not None or not self._production

    def ensure_configured(self) -> None:
        """Fail fast at startup with the same error hash() would raise."""
        if not self.is_configured:
            raise IpHashSaltMissingError()

    def hash(self, ip: str) -> IpHash:
        if self._salt is not None:
            return hash_ip(ip, self._salt)
        if self._production:
            raise IpHashSaltMissingError()
        if not self._warned:
            logger.warning(
                "IP_HASH_SALT not set. Using development fallback salt; "
                "this MUST be set in production!",
            )
            self._warned = True
        return hash_ip(ip, DEV_SALT)
