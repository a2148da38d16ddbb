"""Authentication schemas."""
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class UserRegister(BaseModel):
    """User registration request."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8)


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr
    password: str


class TokenRefresh(BaseModel):
    """Token refresh request."""

    refresh_token: str = Field(..., min_length=1)


class Token(BaseModel):
    """Token pair issued at login and on every refresh."""

    session_id: str
    access_token: str
    access_token_expiry: int
    refresh_token: str
    refresh_token_expiry: int
    token_type: str = "bearer"


class PasswordChange(BaseModel):
    """Change-password request."""

    current_password: str
    new_password: str = Field(..., min_length=8)

    @model_validator(mode="after")
    def passwords_differ(self) -> "PasswordChange":
        if self.current_password == self.new_password:
            raise ValueError("New password must be different from current password")
        return self


class SessionRevoke(BaseModel):
    """Revoke-one-session request."""

    session_id: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User info response."""

    id: str
    email: str
    name: str
    created_at: int

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    """One entry of the active-sessions list."""

    session_id: str
    ip_address: str
    device_info: str
    state: str
    is_current: bool
    last_activity_at: int
    expires_at: int
    created_at: int


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]


class LogoutAllResponse(BaseModel):
    deactivated_sessions: int
    revoked_tokens: int


class LogoutOthersResponse(BaseModel):
    deactivated_count: int


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


class ForgotPassword(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


class EmailChange(BaseModel):
    new_email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: str = Field(..., max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters")
        return value


class IssuedTokenData(BaseModel):
    """Link details, only returned when running in debug mode."""

    token: str
    link: str
    expires_at: int


class IssuedTokenResponse(BaseModel):
    message: str
    data: IssuedTokenData | None = None


class EmailChangeConfirmed(BaseModel):
    new_email: str
    revoked_tokens: int
    deactivated_sessions: int
