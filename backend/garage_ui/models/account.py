"""Single-use account tokens: password reset and email change confirmation.

Like refresh tokens, only the SHA-256 digest of the secret is stored, and
``used`` only ever goes 0 -> 1.
"""
import time

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from garage_ui.database import Base


def _unix_now() -> int:
    return int(time.time())


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"
    __table_args__ = (
        Index("idx_password_reset_tokens_expires", "expires_at"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(Integer, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(Integer)
    created_at = Column(Integer, nullable=False, default=_unix_now)

    user = relationship("User", back_populates="password_reset_tokens")


class EmailChangeToken(Base):
    """Pending move of a user from ``old_email`` to ``new_email``."""

    __tablename__ = "email_change_tokens"
    __table_args__ = (
        Index("idx_email_change_tokens_user_used_expires", "user_id", "used", "expires_at"),
        Index("idx_email_change_tokens_expires", "expires_at"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    old_email = Column(String(255), nullable=False)
    new_email = Column(String(255), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(Integer, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(Integer)
    created_at = Column(Integer, nullable=False, default=_unix_now)

    user = relationship("User", back_populates="email_change_tokens")
