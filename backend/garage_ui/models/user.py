"""User model."""
import time
import uuid

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from garage_ui.database import Base


def _unix_now() -> int:
    return int(time.time())


class User(Base):
    """Dashboard account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(Integer, nullable=False, default=_unix_now)
    updated_at = Column(Integer, default=_unix_now, onupdate=_unix_now)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    password_reset_tokens = relationship(
        "PasswordResetToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    email_change_tokens = relationship(
        "EmailChangeToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
