"""Application exceptions."""

GENERIC_AUTH_FAILURE = "Invalid or expired credentials"


class AuthenticationError(Exception):
    """Any failed session or token check.

    Deliberately carries the same message whatever the cause (unknown,
    expired, revoked, lost rotation race) so callers cannot tell them apart.
    """

    def __init__(self) -> None:
        super().__init__(GENERIC_AUTH_FAILURE)


class AccountError(Exception):
    """An account change the caller asked for cannot be made."""

    status_code = 400


class EmailInUseError(AccountError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Email is already in use by another account")
