"""Identity Schemas: guest-session request/response models.

Invariants:
    - local_fallback_id is opaque at this boundary; the resolver decides if it is usable
    - session_token is returned in the body so app clients (no cookies) can use bearer auth
"""

from uuid import UUID

from pydantic import BaseModel, Field

DEVICE_ID_MAX_LENGTH = 128


class GuestSessionRequest(BaseModel):
    local_fallback_id: str | None = Field(None, max_length=64)


class GuestUserOut(BaseModel):
    id: UUID
    username: str
    is_guest: bool = True


class GuestSessionResponse(BaseModel):
    success: bool
    authenticated: bool = False
    user: GuestUserOut | None = None
    is_new_guest: bool = False
    identified_by: str | None = None
    session_token: str | None = None
