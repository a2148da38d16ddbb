"""SQLAlchemy models package."""
from garage_ui.models.user import User
from garage_ui.models.auth import RefreshToken, UserSession
from garage_ui.models.account import EmailChangeToken, PasswordResetToken

__all__ = [
    "User",
    "UserSession",
    "RefreshToken",
    "PasswordResetToken",
    "EmailChangeToken",
]
