"""Persistence operations over the ``refresh_tokens`` table.

Lookups always go through ``hash_token``; the raw secret never reaches a
query predicate or a log line.
"""
import logging

from sqlalchemy.orm import Session

from garage_ui.models.auth import RefreshToken
from garage_ui.services import clock
from garage_ui.services.hashing import RawToken, hash_token
from garage_ui.services.identifiers import generate_refresh_token_id

logger = logging.getLogger(__name__)


def store_refresh_token(
    db: Session,
    user_id: str,
    session_id: str,
    raw_token: RawToken,
    expires_at: int,
) -> RefreshToken:
    """Persist the digest of ``raw_token`` as a new unrevoked token."""
    record = RefreshToken(
        id=generate_refresh_token_id(),
        user_id=user_id,
        session_id=session_id,
        token_hash=hash_token(raw_token),
        expires_at=expires_at,
        is_revoked=False,
        created_at=clock.now(),
    )
    db.add(record)
    db.flush()
    return record


def validate_refresh_token(db: Session, raw_token: RawToken) -> RefreshToken | None:
    """Return the token row only if it is unrevoked and ``expires_at > now``."""
    return db.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_token(raw_token),
        RefreshToken.is_revoked.is_(False),
        RefreshToken.expires_at > clock.now(),
    ).populate_existing().first()


def revoke_refresh_token(db: Session, raw_token: RawToken) -> int:
    """Revoke the matching token whatever its expiry. Returns 0 or 1."""
    now = clock.now()
    return db.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_token(raw_token),
        RefreshToken.is_revoked.is_(False),
    ).update(
        {"is_revoked": True, "revoked_at": now},
        synchronize_session=False,
    )


def consume_refresh_token(db: Session, raw_token: RawToken) -> RefreshToken | None:
    """Revoke the token if and only if it is still valid.

    The check and the flip are one conditional UPDATE, so of several callers
    racing on the same secret exactly one sees a row count of 1 and gets the
    record back; the rest get ``None``.
    """
    now = clock.now()
    token_hash = hash_token(raw_token)
    flipped = db.query(RefreshToken).filter(
        RefreshToken.token_hash == token_hash,
        RefreshToken.is_revoked.is_(False),
        RefreshToken.expires_at > now,
    ).update(
        {"is_revoked": True, "revoked_at": now},
        synchronize_session=False,
    )
    if flipped != 1:
        return None

    return db.query(RefreshToken).filter(
        RefreshToken.token_hash == token_hash,
    ).populate_existing().one()


def revoke_session_tokens(db: Session, session_id: str) -> int:
    """Revoke every unrevoked token of one session."""
    now = clock.now()
    return db.query(RefreshToken).filter(
        RefreshToken.session_id == session_id,
        RefreshToken.is_revoked.is_(False),
    ).update(
        {"is_revoked": True, "revoked_at": now},
        synchronize_session=False,
    )


def revoke_other_session_tokens(db: Session, user_id: str, keep_session_id: str) -> int:
    """Revoke every unrevoked token of the user outside ``keep_session_id``."""
    now = clock.now()
    return db.query(RefreshToken).filter(
        RefreshToken.user_id == user_id,
        RefreshToken.session_id != keep_session_id,
        RefreshToken.is_revoked.is_(False),
    ).update(
        {"is_revoked": True, "revoked_at": now},
        synchronize_session=False,
    )


def revoke_user_tokens(db: Session, user_id: str) -> int:
    """Revoke every unrevoked token of the user."""
    now = clock.now()
    return db.query(RefreshToken).filter(
        RefreshToken.user_id == user_id,
        RefreshToken.is_revoked.is_(False),
    ).update(
        {"is_revoked": True, "revoked_at": now},
        synchronize_session=False,
    )


def sweep_refresh_tokens(db: Session) -> int:
    """Hard-delete tokens that are both revoked and past expiry.

    Expired tokens that were never revoked stay until their session is swept.
    """
    deleted = db.query(RefreshToken).filter(
        RefreshToken.is_revoked.is_(True),
        RefreshToken.expires_at <= clock.now(),
    ).delete(synchronize_session=False)
    if deleted:
        logger.info(f"Deleted {deleted} revoked refresh tokens")
    return deleted
