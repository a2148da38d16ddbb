"""Session and refresh-token lifecycle.

Orchestrates ``session_store`` and ``refresh_token_store``; it owns the
transaction boundaries (each public operation commits once) and turns empty
store results into ``AuthenticationError``.

Per session the refresh chain moves ACTIVE -> ACTIVE on touch and rotation,
and ACTIVE -> TERMINATED (logout, revocation) or ACTIVE -> EXPIRED, both
terminal.
"""
from dataclasses import dataclass
import enum
import logging

from sqlalchemy.orm import Session
from user_agents.parsers import UserAgent

from garage_ui.config import get_settings
from garage_ui.exceptions import AuthenticationError
from garage_ui.models.auth import UserSession
from garage_ui.services import clock
from garage_ui.services import refresh_token_store as tokens
from garage_ui.services import session_store as sessions
from garage_ui.services.hashing import RawToken, generate_refresh_secret

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"
    EXPIRED = "expired"


def session_state(record: UserSession, now: int | None = None) -> SessionState:
    """Collapse ``is_active``/``expires_at`` into one state.

    Termination wins over expiry: a revoked session reads as TERMINATED even
    after its expiry time has passed.
    """
    if not record.is_active:
        return SessionState.TERMINATED
    if record.expires_at <= (clock.now() if now is None else now):
        return SessionState.EXPIRED
    return SessionState.ACTIVE


@dataclass(frozen=True)
class LoginResult:
    session_id: str
    refresh_token: RawToken
    refresh_expires_at: int
    session_expires_at: int


@dataclass(frozen=True)
class RefreshResult:
    user_id: str
    session_id: str
    refresh_token: RawToken
    refresh_expires_at: int
    session_expires_at: int


def _refresh_expiry() -> int:
    return clock.now() + get_settings().refresh_token_expire_seconds


def login(
    db: Session,
    user_id: str,
    ip_address: str | None,
    user_agent: str | UserAgent | None,
) -> LoginResult:
    """Open a session and its first refresh token for verified credentials."""
    try:
        session_id, record = sessions.create_session(db, user_id, ip_address, user_agent)
        raw_token = generate_refresh_secret()
        refresh_expires_at = _refresh_expiry()
        tokens.store_refresh_token(db, user_id, session_id, raw_token, refresh_expires_at)
        session_expires_at = record.expires_at
        device_info = record.device_info
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Opened session {session_id} for user {user_id} ({device_info})")
    return LoginResult(
        session_id=session_id,
        refresh_token=raw_token,
        refresh_expires_at=refresh_expires_at,
        session_expires_at=session_expires_at,
    )


def authenticate_request(db: Session, session_id: str, user_id: str | None = None) -> UserSession:
    """Check that the session behind an already verified credential is live.

    Touches the session on success. Raises ``AuthenticationError`` when the
    session is unknown, expired, deactivated, owned by someone else, or was
    deactivated between the lookup and the touch.
    """
    record = sessions.get_active_session(db, session_id)
    if record is None or (user_id is not None and record.user_id != user_id):
        raise AuthenticationError()

    touched = sessions.touch_session(db, session_id)
    if touched is None:
        db.rollback()
        raise AuthenticationError()

    db.commit()
    return touched


def refresh(db: Session, raw_token: RawToken) -> RefreshResult:
    """Rotate a refresh token.

    Consuming the presented token is a single revoke-if-valid UPDATE; only the
    caller whose update flipped it mints a replacement. Everything happens in
    one transaction, rolled back on any failure.

    Unlike ``authenticate_request``, which only touches the session, rotation
    also moves the session's ``expires_at`` to now plus the session lifetime
    (``extend_session``). Without that a session would end one lifetime after
    login however often it refreshed. The extension only applies to a session
    that is still live, so an expired session cannot be revived by its token.
    """
    if not raw_token:
        raise AuthenticationError()

    try:
        consumed = tokens.consume_refresh_token(db, raw_token)
        if consumed is None:
            raise AuthenticationError()

        settings = get_settings()
        session = sessions.extend_session(
            db,
            consumed.session_id,
            clock.now() + settings.access_token_expire_seconds,
        )
        if session is None:
            raise AuthenticationError()

        new_token = generate_refresh_secret()
        refresh_expires_at = _refresh_expiry()
        tokens.store_refresh_token(db, consumed.user_id, consumed.session_id, new_token, refresh_expires_at)
        result = RefreshResult(
            user_id=consumed.user_id,
            session_id=consumed.session_id,
            refresh_token=new_token,
            refresh_expires_at=refresh_expires_at,
            session_expires_at=session.expires_at,
        )
        db.commit()
    except AuthenticationError:
        db.rollback()
        logger.info("Refresh rejected")
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(f"Rotated refresh token for session {result.session_id}")
    return result


def logout(db: Session, session_id: str) -> int:
    """Deactivate one session and revoke all of its refresh tokens."""
    try:
        deactivated = sessions.deactivate_session(db, session_id)
        revoked = tokens.revoke_session_tokens(db, session_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Logged out session {session_id} ({revoked} tokens revoked)")
    return deactivated


def revoke_user_session(db: Session, user_id: str, session_id: str) -> int:
    """Log out one of the user's own sessions.

    Raises ``AuthenticationError`` if the session is not a live session of
    that user, so foreign session ids are indistinguishable from unknown ones.
    """
    record = sessions.get_active_session(db, session_id)
    if record is None or record.user_id != user_id:
        raise AuthenticationError()
    return logout(db, session_id)


def logout_others(db: Session, user_id: str, keep_session_id: str) -> int:
    """Log out every session of the user except ``keep_session_id``."""
    try:
        deactivated = sessions.deactivate_other_sessions(db, user_id, keep_session_id)
        revoked = tokens.revoke_other_session_tokens(db, user_id, keep_session_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Logged out {deactivated} other sessions for user {user_id} ({revoked} tokens revoked)")
    return deactivated


def logout_all(db: Session, user_id: str) -> tuple[int, int]:
    """Log out every session of the user. Returns ``(sessions, tokens)``."""
    try:
        deactivated = sessions.deactivate_all_sessions(db, user_id)
        revoked = tokens.revoke_user_tokens(db, user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Logged out all {deactivated} sessions for user {user_id} ({revoked} tokens revoked)")
    return deactivated, revoked


def force_logout(db: Session, user_id: str) -> tuple[int, int]:
    """Global logout after a credential change; same effect as ``logout_all``.

    Callers stage the credential change on ``db`` first without committing.
    It is committed together with the logout, or rolled back with it.
    """
    logger.warning(f"Forcing logout of user {user_id}")
    return logout_all(db, user_id)


def list_sessions(db: Session, user_id: str) -> list[UserSession]:
    return sessions.list_active_sessions(db, user_id)


def sweep_expired(db: Session) -> tuple[int, int]:
    """Out-of-band cleanup. Returns ``(sessions_deleted, tokens_deleted)``."""
    try:
        tokens_deleted = tokens.sweep_refresh_tokens(db)
        sessions_deleted = sessions.sweep_expired_sessions(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return sessions_deleted, tokens_deleted
