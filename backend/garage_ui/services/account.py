"""Credential and profile changes.

Every change of a password or an email ends the user's sessions in the same
transaction as the change itself, through ``session_lifecycle.force_logout``.
There is no mailer: the issued link is logged without its secret and handed
back to the caller, which decides whether to expose it.
"""
from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from garage_ui.config import get_settings
from garage_ui.exceptions import AccountError, AuthenticationError, EmailInUseError
from garage_ui.models.user import User
from garage_ui.services import account_token_store, clock, session_lifecycle
from garage_ui.services.hashing import RawToken, generate_account_secret, get_password_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: RawToken
    link: str
    expires_at: int


@dataclass(frozen=True)
class EmailChangeResult:
    new_email: str
    deactivated_sessions: int
    revoked_tokens: int


def normalize_email(email: str) -> str:
    return email.strip().lower()


def change_password(db: Session, user: User, new_password: str) -> tuple[int, int]:
    """Set a new password and end every session of the user in one commit."""
    user.password_hash = get_password_hash(new_password)
    user.updated_at = clock.now()
    return session_lifecycle.force_logout(db, user.id)


def request_password_reset(db: Session, email: str) -> IssuedToken | None:
    """Issue a reset link, or ``None`` if no account has that email."""
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    settings = get_settings()
    raw_token = generate_account_secret()
    expires_at = clock.now() + settings.password_reset_expire_seconds
    try:
        account_token_store.store_password_reset(db, user.id, raw_token, expires_at)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Password reset link issued for user {user.id}")
    return IssuedToken(
        token=raw_token,
        link=f"{settings.app_base_url}/reset-password/{raw_token.value}",
        expires_at=expires_at,
    )


def reset_password(db: Session, raw_token: RawToken, new_password: str) -> tuple[int, int]:
    """Spend a reset token, set the password and end every session.

    Raises ``AuthenticationError`` for an unknown, used or expired token.
    """
    if not raw_token:
        raise AuthenticationError()

    try:
        record = account_token_store.consume_password_reset(db, raw_token)
        if record is None:
            raise AuthenticationError()
        user = db.get(User, record.user_id)
        if user is None:
            raise AuthenticationError()
        result = change_password(db, user, new_password)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Password reset for user {user.id}")
    return result


def request_email_change(db: Session, user: User, new_email: str) -> IssuedToken:
    """Issue a confirmation link for moving ``user`` to ``new_email``."""
    new_email = normalize_email(new_email)
    if new_email == user.email:
        raise AccountError("New email cannot be the same as current email")
    if db.query(User).filter(User.email == new_email).first():
        raise EmailInUseError()
    if account_token_store.get_pending_email_change(db, user.id) is not None:
        raise AccountError("An email change is already pending; confirm it or wait for it to expire")

    settings = get_settings()
    raw_token = generate_account_secret()
    expires_at = clock.now() + settings.email_change_expire_seconds
    try:
        account_token_store.store_email_change(db, user.id, user.email, new_email, raw_token, expires_at)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Email change link issued for user {user.id}")
    return IssuedToken(
        token=raw_token,
        link=f"{settings.app_base_url}/confirm-email-change?token={raw_token.value}",
        expires_at=expires_at,
    )


def confirm_email_change(db: Session, raw_token: RawToken) -> EmailChangeResult:
    """Spend a confirmation token, switch the email and end every session.

    The token is left unspent when the change can no longer apply: the
    account's email moved on since the request, or someone else took the new
    address.
    """
    if not raw_token:
        raise AuthenticationError()

    try:
        record = account_token_store.consume_email_change(db, raw_token)
        if record is None:
            raise AuthenticationError()
        user = db.get(User, record.user_id)
        if user is None:
            raise AuthenticationError()
        if user.email != record.old_email:
            raise AccountError("Email change request is no longer valid")
        taken = db.query(User).filter(User.email == record.new_email, User.id != user.id).first()
        if taken is not None:
            raise EmailInUseError()

        user.email = record.new_email
        user.updated_at = clock.now()
        deactivated, revoked = session_lifecycle.force_logout(db, user.id)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Email changed for user {user.id}")
    return EmailChangeResult(
        new_email=record.new_email,
        deactivated_sessions=deactivated,
        revoked_tokens=revoked,
    )


def update_profile(db: Session, user: User, name: str) -> User:
    user.name = name
    user.updated_at = clock.now()
    db.commit()
    db.refresh(user)
    return user


def sweep_account_tokens(db: Session) -> int:
    try:
        deleted = account_token_store.sweep_account_tokens(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return deleted
