"""Secret handling: refresh-token digests and password hashes."""
from dataclasses import dataclass, field
import hashlib
import secrets
from typing import NewType

import bcrypt

TokenHash = NewType("TokenHash", str)


@dataclass(frozen=True)
class RawToken:
    """A refresh-token secret as handed to the client.

    Never persisted. ``repr``/``str`` are redacted so the value cannot end up
    in logs by accident; read ``value`` explicitly when it must leave the
    process.
    """

    value: str = field(repr=False)

    def __str__(self) -> str:
        return "RawToken(<redacted>)"

    def __bool__(self) -> bool:
        return bool(self.value)


def hash_token(raw: RawToken) -> TokenHash:
    """Deterministic one-way digest of a refresh secret."""
    if not isinstance(raw, RawToken):
        raise TypeError("hash_token expects a RawToken")
    return TokenHash(hashlib.sha256(raw.value.encode("utf-8")).hexdigest())


def generate_refresh_secret() -> RawToken:
    """Create a new high-entropy refresh secret."""
    return RawToken(secrets.token_urlsafe(48))


def generate_account_secret() -> RawToken:
    """Secret for a single-use password reset or email change link."""
    return RawToken(secrets.token_urlsafe(32))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")
