"""Access-token signing and structural verification.

Verification here is pure: signature, expiry, type and required claims.
Whether the embedded session is still live is a separate, stateful check in
``session_lifecycle.authenticate_request``.
"""
import logging
from typing import TypedDict

from jose import JWTError, jwt

from garage_ui.config import get_settings
from garage_ui.exceptions import AuthenticationError
from garage_ui.services import clock

logger = logging.getLogger(__name__)


class AccessClaims(TypedDict, total=False):
    iss: str
    sub: str            # user id
    sid: str            # session id
    typ: str            # "access"
    iat: int
    nbf: int
    exp: int


def create_access_token(user_id: str, session_id: str) -> tuple[str, int]:
    """Sign an access token for a session. Returns ``(token, expires_at)``."""
    settings = get_settings()
    now = clock.now()
    expires_at = now + settings.access_token_expire_seconds
    claims: AccessClaims = {
        "iss": settings.token_issuer,
        "sub": user_id,
        "sid": session_id,
        "typ": "access",
        "iat": now,
        "nbf": now,
        "exp": expires_at,
    }
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
    return token, expires_at


def decode_access_token(token: str) -> AccessClaims:
    """Verify signature, expiry, type and required claims of an access token."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            issuer=settings.token_issuer,
        )
    except JWTError as exc:
        logger.debug(f"Rejected access token: {exc}")
        raise AuthenticationError() from exc

    if payload.get("typ") != "access" or not payload.get("sub") or not payload.get("sid"):
        raise AuthenticationError()

    return payload  # type: ignore[return-value]
