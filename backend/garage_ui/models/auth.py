"""Authentication/session models.

Timestamps are integer Unix seconds. Neither table is ever updated back to an
active state: ``is_active`` only goes 1 -> 0 and ``is_revoked`` only 0 -> 1.
"""
import time

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from garage_ui.database import Base


def _unix_now() -> int:
    return int(time.time())


class UserSession(Base):
    """One authenticated browser/device context."""

    __tablename__ = "sessions"
    __table_args__ = (
        Index("idx_sessions_active_expires", "is_active", "expires_at"),
        Index("idx_sessions_user_active_expires", "user_id", "is_active", "expires_at"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    ip_address = Column(String(45), nullable=False, default="")
    user_agent = Column(Text, nullable=False, default="")
    device_info = Column(String(255), nullable=False, default="unknown")
    is_active = Column(Boolean, nullable=False, default=True)
    last_activity_at = Column(Integer, nullable=False)
    expires_at = Column(Integer, nullable=False)
    created_at = Column(Integer, nullable=False, default=_unix_now)
    updated_at = Column(Integer)

    user = relationship("User", back_populates="sessions")
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RefreshToken(Base):
    """Rotatable refresh credential bound to exactly one session.

    Only the SHA-256 digest of the secret is stored.
    """

    __tablename__ = "refresh_tokens"
    __table_args__ = (
        Index("idx_refresh_tokens_user_revoked", "user_id", "is_revoked"),
        Index("idx_refresh_tokens_session_revoked", "session_id", "is_revoked"),
        Index("idx_refresh_tokens_revoked_expires", "is_revoked", "expires_at"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(64), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(Integer, nullable=False)
    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(Integer)
    created_at = Column(Integer, nullable=False, default=_unix_now)

    user = relationship("User", back_populates="refresh_tokens")
    session = relationship("UserSession", back_populates="refresh_tokens")
