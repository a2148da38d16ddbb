"""Persistence operations over the ``sessions`` table.

Every function takes the caller's ``Session``, flushes but never commits, so
the lifecycle service decides the transaction boundaries. State-changing
statements are single conditional UPDATEs; a row that no longer matches the
guard is simply not counted.
"""
import logging

from sqlalchemy.orm import Session
from user_agents.parsers import UserAgent

from garage_ui.config import get_settings
from garage_ui.models.auth import UserSession
from garage_ui.services import clock
from garage_ui.services.device import describe_device, raw_user_agent
from garage_ui.services.identifiers import generate_session_id

logger = logging.getLogger(__name__)


def create_session(
    db: Session,
    user_id: str,
    ip_address: str | None,
    user_agent: str | UserAgent | None,
) -> tuple[str, UserSession]:
    """Insert a new active session and return ``(session_id, record)``."""
    now = clock.now()
    session_id = generate_session_id()

    record = UserSession(
        id=session_id,
        user_id=user_id,
        ip_address=ip_address or "",
        user_agent=raw_user_agent(user_agent),
        device_info=describe_device(user_agent),
        is_active=True,
        last_activity_at=now,
        expires_at=now + get_settings().access_token_expire_seconds,
        created_at=now,
        updated_at=now,
    )
    db.add(record)
    db.flush()

    return session_id, record


def _reload(db: Session, session_id: str) -> UserSession | None:
    return db.get(UserSession, session_id, populate_existing=True)


def touch_session(db: Session, session_id: str) -> UserSession | None:
    """Bump ``last_activity_at`` on an active session.

    Returns ``None`` without writing anything when the session has been
    deactivated, so a stale in-flight request cannot resurrect it.
    """
    now = clock.now()
    updated = db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.is_active.is_(True),
    ).update(
        {"last_activity_at": now, "updated_at": now},
        synchronize_session=False,
    )
    if not updated:
        return None
    return _reload(db, session_id)


def extend_session(db: Session, session_id: str, expires_at: int) -> UserSession | None:
    """Touch a live session and move its expiry to ``expires_at``.

    Only live rows (active and unexpired) qualify; an expired session stays
    expired.
    """
    now = clock.now()
    updated = db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.is_active.is_(True),
        UserSession.expires_at > now,
    ).update(
        {"last_activity_at": now, "updated_at": now, "expires_at": expires_at},
        synchronize_session=False,
    )
    if not updated:
        return None
    return _reload(db, session_id)


def get_active_session(db: Session, session_id: str) -> UserSession | None:
    """Return the session only if it is active and ``expires_at > now``."""
    return db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.is_active.is_(True),
        UserSession.expires_at > clock.now(),
    ).populate_existing().first()


def list_active_sessions(db: Session, user_id: str) -> list[UserSession]:
    """Active, unexpired sessions for a user, most recently active first."""
    return db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_active.is_(True),
        UserSession.expires_at > clock.now(),
    ).order_by(
        UserSession.last_activity_at.desc(),
        UserSession.id.desc(),
    ).populate_existing().all()


def deactivate_session(db: Session, session_id: str) -> int:
    """Deactivate one session. Already inactive rows count as 0."""
    now = clock.now()
    return db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.is_active.is_(True),
    ).update(
        {"is_active": False, "updated_at": now},
        synchronize_session=False,
    )


def deactivate_other_sessions(db: Session, user_id: str, keep_session_id: str) -> int:
    """Deactivate every active session of the user except ``keep_session_id``."""
    now = clock.now()
    return db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.id != keep_session_id,
        UserSession.is_active.is_(True),
    ).update(
        {"is_active": False, "updated_at": now},
        synchronize_session=False,
    )


def deactivate_all_sessions(db: Session, user_id: str) -> int:
    """Deactivate every active session of the user, the caller's included."""
    now = clock.now()
    return db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_active.is_(True),
    ).update(
        {"is_active": False, "updated_at": now},
        synchronize_session=False,
    )


def sweep_expired_sessions(db: Session) -> int:
    """Hard-delete sessions past ``expires_at``, active or not.

    Their refresh tokens go with them through the FK cascade.
    """
    deleted = db.query(UserSession).filter(
        UserSession.expires_at <= clock.now(),
    ).delete(synchronize_session=False)
    if deleted:
        logger.info(f"Deleted {deleted} expired sessions")
    return deleted
