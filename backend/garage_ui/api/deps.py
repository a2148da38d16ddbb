"""Shared API dependencies."""
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from garage_ui.database import get_db
from garage_ui.exceptions import GENERIC_AUTH_FAILURE, AuthenticationError
from garage_ui.models.user import User
from garage_ui.services.session_lifecycle import authenticate_request
from garage_ui.services.tokens import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)

__all__ = ["AuthContext", "get_current_auth", "get_current_user", "get_db", "unauthorized"]


@dataclass(frozen=True)
class AuthContext:
    """Identity of an authenticated request."""

    user_id: str
    session_id: str


def unauthorized() -> HTTPException:
    """The one 401 every auth failure maps to."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=GENERIC_AUTH_FAILURE,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Verify the bearer token, then require its session to still be live."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise unauthorized()

    try:
        claims = decode_access_token(credentials.credentials)
        authenticate_request(db, claims["sid"], user_id=claims["sub"])
    except AuthenticationError:
        raise unauthorized()

    return AuthContext(user_id=claims["sub"], session_id=claims["sid"])


def get_current_user(
    auth: AuthContext = Depends(get_current_auth),
    db: Session = Depends(get_db),
) -> User:
    """Load the user behind the current session."""
    user = db.query(User).filter(User.id == auth.user_id).first()
    if not user:
        raise unauthorized()
    return user
