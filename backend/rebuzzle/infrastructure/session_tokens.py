"""Session Credentials: short-lived HS256 tokens derived for a resolved user.

Invariants:
    - sub is the user id (UUID string); guest flag travels in the "guest" claim
    - iss / aud are fixed and verified on decode
    - Any decode failure (expired, forged, malformed) maps to AuthenticationError

Design Decisions:
    - PyJWT HS256 with a shared secret: the core only needs "issue for user" and
      "verify to user id"; token format is otherwise an HTTP-layer concern
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from rebuzzle.core.domain_types import UserId
from rebuzzle.core.errors import AuthenticationError

ISSUER = "rebuzzle"
AUDIENCE = "rebuzzle-app"
ALGORITHM = "HS256"


class SessionTokenIssuer:

    def __init__(self, secret: str, ttl_seconds: int):
        self.secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: UserId, is_guest: bool, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "guest": is_guest,
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> UserId:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                audience=AUDIENCE,
                issuer=ISSUER,
            )
            return UserId(UUID(payload["sub"]))
        except (jwt.PyJWTError, KeyError, ValueError):
            raise AuthenticationError("Invalid or expired session")
