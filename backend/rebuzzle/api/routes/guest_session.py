"""Guest Session: lazy guest identification and provisioning for anonymous callers.

Invariants:
    - A valid auth cookie short-circuits: authenticated callers never get a guest
    - Resolution runs the fixed signal chain; provisioning happens only on a miss
    - Cookies are written only for browser callers (no X-Device-Id); apps use the
      session_token from the body as a bearer token
    - The raw client IP is hashed before anything is stored
    - A found guest gains the device_id / ip_hash it arrived with when those are
      still empty, so the next call can reattach by either signal
    - X-Device-Id longer than the stored column is a 400, never a database error

Design Decisions:
    - Lazy creation (called when a puzzle is first viewed): casual visitors never
      create accounts, returning guests reattach silently
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, Request, Response

from rebuzzle.api.dependencies import (
    get_identity_resolver, get_ip_hasher, get_provisioner, get_token_issuer,
    get_user_store,
)
from rebuzzle.config import Settings, get_settings
from rebuzzle.core.domain_types import GuestCredentials, IdentitySignals, UserRecord
from rebuzzle.core.errors import AuthenticationError
from rebuzzle.core.ip_hasher import IpHasher
from rebuzzle.core.repository_protocols import UserStore
from rebuzzle.infrastructure.session_tokens import SessionTokenIssuer
from rebuzzle.schemas.identity import (
    DEVICE_ID_MAX_LENGTH, GuestSessionRequest, GuestSessionResponse, GuestUserOut,
)
from rebuzzle.services.guest_provisioner import GuestAccountProvisioner
from rebuzzle.services.identity_resolver import (
    IdentityResolver, extract_client_ip, has_usable_ip,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/guest", tags=["guest"])


@router.post("/session", response_model=GuestSessionResponse)
async def guest_session(
    request: Request,
    response: Response,
    body: GuestSessionRequest | None = None,
    resolver: IdentityResolver = Depends(get_identity_resolver),
    provisioner: GuestAccountProvisioner = Depends(get_provisioner),
    users: UserStore = Depends(get_user_store),
    ip_hasher: IpHasher = Depends(get_ip_hasher),
    tokens: SessionTokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
    x_device_id: str | None = Header(None, max_length=DEVICE_ID_MAX_LENGTH),
):
    """Identify the caller as an existing guest, or create one."""
    if _has_valid_session(request, tokens, settings):
        return GuestSessionResponse(success=False, authenticated=True)

    device_id = x_device_id or None
    ip_address = extract_client_ip(
        request.headers, request.client.host if request.client else None,
    )
    signals = IdentitySignals(
        ip_address=ip_address,
        device_id=device_id,
        guest_token=request.cookies.get(settings.guest_token_cookie),
        local_fallback_id=body.local_fallback_id if body else None,
    )
    resolution = await resolver.resolve(signals)
    ip_hash = ip_hasher.hash(ip_address) if has_usable_ip(ip_address) else None

    if resolution.found:
        user = resolution.user
        await users.link_guest_signals(user.id, device_id, ip_hash)
        credentials = provisioner.credentials_for(user)
        await users.record_sighting(user.id, ip_hash, datetime.now(timezone.utc))
        is_new = False
    else:
        provisioned = await provisioner.provision(device_id=device_id, ip_hash=ip_hash)
        user, credentials = provisioned.user, provisioned.credentials
        is_new = provisioned.created

    if not device_id:
        _set_cookies(response, credentials, settings)

    return _build_response(user, credentials, is_new, resolution.identified_by.value)


def _has_valid_session(
    request: Request, tokens: SessionTokenIssuer, settings: Settings,
) -> bool:
    token = request.cookies.get(settings.auth_cookie)
    if not token:
        return False
    try:
        tokens.verify(token)
    except AuthenticationError:
        logger.info("Stale auth cookie ignored; resolving as guest")
        return False
    return True


def _set_cookies(
    response: Response, credentials: GuestCredentials, settings: Settings,
) -> None:
    common = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        settings.guest_token_cookie, credentials.guest_token,
        max_age=credentials.guest_token_max_age, **common,
    )
    response.set_cookie(
        settings.auth_cookie, credentials.session_token,
        max_age=credentials.session_max_age, **common,
    )


def _build_response(
    user: UserRecord, credentials: GuestCredentials, is_new: bool, identified_by: str,
) -> GuestSessionResponse:
    return GuestSessionResponse(
        success=True,
        user=GuestUserOut(id=user.id, username=user.username, is_guest=user.is_guest),
        is_new_guest=is_new,
        identified_by=identified_by,
        session_token=credentials.session_token,
    )
