"""Authentication API endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from garage_ui.api.deps import AuthContext, get_current_auth, get_current_user, get_db, unauthorized
from garage_ui.config import get_settings
from garage_ui.exceptions import AuthenticationError
from garage_ui.models.user import User
from garage_ui.schemas.auth import (
    ForgotPassword,
    IssuedTokenData,
    IssuedTokenResponse,
    MessageResponse,
    PasswordChange,
    PasswordReset,
    Token,
    TokenRefresh,
    UserLogin,
    UserRegister,
    UserResponse,
)
from garage_ui.services import account, session_lifecycle
from garage_ui.services.account import IssuedToken, normalize_email
from garage_ui.services.hashing import RawToken, get_password_hash, verify_password
from garage_ui.services.tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_request_ip(request: Request) -> str | None:
    """Extract best-effort client IP for session metadata."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Register a new user."""
    if db.query(User).filter(User.email == normalize_email(user_data.email)).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=normalize_email(user_data.email),
        name=user_data.name,
        password_hash=get_password_hash(user_data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    return user


@router.post("/login", response_model=Token)
def login(
    user_data: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
):
    """Login and get tokens."""
    user = db.query(User).filter(User.email == normalize_email(user_data.email)).first()

    if not user or not verify_password(user_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = session_lifecycle.login(
        db,
        user.id,
        get_request_ip(request),
        request.headers.get("user-agent"),
    )
    access_token, access_expires_at = create_access_token(user.id, result.session_id)

    return Token(
        session_id=result.session_id,
        access_token=access_token,
        access_token_expiry=access_expires_at,
        refresh_token=result.refresh_token.value,
        refresh_token_expiry=result.refresh_expires_at,
    )


@router.post("/refresh", response_model=Token)
def refresh_tokens(body: TokenRefresh, db: Session = Depends(get_db)):
    """Rotate the refresh token and issue a new access token."""
    try:
        result = session_lifecycle.refresh(db, RawToken(body.refresh_token))
    except AuthenticationError:
        raise unauthorized()

    access_token, access_expires_at = create_access_token(result.user_id, result.session_id)

    return Token(
        session_id=result.session_id,
        access_token=access_token,
        access_token_expiry=access_expires_at,
        refresh_token=result.refresh_token.value,
        refresh_token_expiry=result.refresh_expires_at,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_auth),
):
    """Logout the current session and revoke its refresh tokens."""
    session_lifecycle.logout(db, auth.session_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/whoami", response_model=UserResponse)
def whoami(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return current_user


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change password and sign out every session, this one included."""
    if not verify_password(body.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    account.change_password(db, current_user, body.new_password)

    return MessageResponse(message="Password changed. Please sign in again.")


def issued_token_response(message: str, issued: IssuedToken | None) -> IssuedTokenResponse:
    """Hand the link back only in debug mode; otherwise it goes out of band."""
    if issued is None or not get_settings().debug:
        return IssuedTokenResponse(message=message)
    return IssuedTokenResponse(
        message=message,
        data=IssuedTokenData(token=issued.token.value, link=issued.link, expires_at=issued.expires_at),
    )


@router.post("/password/forgot", response_model=IssuedTokenResponse)
def forgot_password(body: ForgotPassword, db: Session = Depends(get_db)):
    """Start a password reset. The answer is the same whether or not the email exists."""
    issued = account.request_password_reset(db, body.email)
    return issued_token_response(
        "If an account exists with this email, a password reset link has been sent.",
        issued,
    )


@router.post("/password/reset", response_model=MessageResponse)
def reset_password(body: PasswordReset, db: Session = Depends(get_db)):
    """Set a new password from a reset link and sign out every session."""
    try:
        account.reset_password(db, RawToken(body.token), body.password)
    except AuthenticationError:
        raise unauthorized()
    return MessageResponse(message="Password has been reset. All sessions have been signed out.")
