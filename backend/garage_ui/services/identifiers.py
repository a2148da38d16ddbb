"""Typed, sortable identifiers for sessions and stored tokens."""
from typing import Literal

from typeid import TypeID

IdKind = Literal["sess", "rtoken", "pwreset", "emailchg"]

ID_KINDS: frozenset[str] = frozenset({"sess", "rtoken", "pwreset", "emailchg"})


def generate_id(kind: IdKind) -> str:
    """Generate a TypeID such as ``sess_01h455vb4pex5vsknk084sn02q``.

    The suffix is a UUIDv7, so ids of the same kind sort by creation time.
    """
    if kind not in ID_KINDS:
        raise ValueError(f"Unknown identifier kind: {kind}")
    return str(TypeID(prefix=kind))


def generate_session_id() -> str:
    return generate_id("sess")


def generate_refresh_token_id() -> str:
    return generate_id("rtoken")


def generate_password_reset_id() -> str:
    return generate_id("pwreset")


def generate_email_change_id() -> str:
    return generate_id("emailchg")
