"""Persistence operations over the single-use account token tables.

Same rules as ``refresh_token_store``: only digests are queried or stored,
functions flush but never commit, and consuming is one conditional UPDATE.
"""
import logging

from sqlalchemy.orm import Session

from garage_ui.models.account import EmailChangeToken, PasswordResetToken
from garage_ui.services import clock
from garage_ui.services.hashing import RawToken, hash_token
from garage_ui.services.identifiers import generate_email_change_id, generate_password_reset_id

logger = logging.getLogger(__name__)


def _consume(db: Session, model, raw_token: RawToken):
    """Mark the token used if it is unused and unexpired; return it or ``None``."""
    now = clock.now()
    token_hash = hash_token(raw_token)
    flipped = db.query(model).filter(
        model.token_hash == token_hash,
        model.used.is_(False),
        model.expires_at > now,
    ).update(
        {"used": True, "used_at": now},
        synchronize_session=False,
    )
    if flipped != 1:
        return None

    return db.query(model).filter(model.token_hash == token_hash).populate_existing().one()


def store_password_reset(db: Session, user_id: str, raw_token: RawToken, expires_at: int) -> PasswordResetToken:
    record = PasswordResetToken(
        id=generate_password_reset_id(),
        user_id=user_id,
        token_hash=hash_token(raw_token),
        expires_at=expires_at,
        used=False,
        created_at=clock.now(),
    )
    db.add(record)
    db.flush()
    return record


def consume_password_reset(db: Session, raw_token: RawToken) -> PasswordResetToken | None:
    return _consume(db, PasswordResetToken, raw_token)


def store_email_change(
    db: Session,
    user_id: str,
    old_email: str,
    new_email: str,
    raw_token: RawToken,
    expires_at: int,
) -> EmailChangeToken:
    record = EmailChangeToken(
        id=generate_email_change_id(),
        user_id=user_id,
        old_email=old_email,
        new_email=new_email,
        token_hash=hash_token(raw_token),
        expires_at=expires_at,
        used=False,
        created_at=clock.now(),
    )
    db.add(record)
    db.flush()
    return record


def get_pending_email_change(db: Session, user_id: str) -> EmailChangeToken | None:
    """Unused, unexpired email change request of the user, if any."""
    return db.query(EmailChangeToken).filter(
        EmailChangeToken.user_id == user_id,
        EmailChangeToken.used.is_(False),
        EmailChangeToken.expires_at > clock.now(),
    ).first()


def consume_email_change(db: Session, raw_token: RawToken) -> EmailChangeToken | None:
    return _consume(db, EmailChangeToken, raw_token)


def sweep_account_tokens(db: Session) -> int:
    """Delete expired account tokens, used or not."""
    now = clock.now()
    deleted = 0
    for model in (PasswordResetToken, EmailChangeToken):
        deleted += db.query(model).filter(model.expires_at <= now).delete(synchronize_session=False)
    if deleted:
        logger.info(f"Swept {deleted} expired account tokens")
    return deleted
