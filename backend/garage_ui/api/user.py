"""Profile and email change endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from garage_ui.api.auth import issued_token_response
from garage_ui.api.deps import get_current_user, get_db, unauthorized
from garage_ui.exceptions import AccountError, AuthenticationError
from garage_ui.models.user import User
from garage_ui.schemas.auth import (
    EmailChange,
    EmailChangeConfirmed,
    IssuedTokenResponse,
    ProfileUpdate,
    UserResponse,
)
from garage_ui.services import account
from garage_ui.services.hashing import RawToken, verify_password

router = APIRouter(prefix="/user", tags=["user"])


def account_error(exc: AccountError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.put("/profile", response_model=UserResponse)
def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the caller's display name."""
    return account.update_profile(db, current_user, body.name)


@router.post("/email/change", response_model=IssuedTokenResponse)
def change_email(
    body: EmailChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Request a move to a new email; it takes effect once confirmed."""
    if not verify_password(body.password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password is incorrect",
        )

    try:
        issued = account.request_email_change(db, current_user, body.new_email)
    except AccountError as exc:
        raise account_error(exc)

    return issued_token_response(
        "A confirmation link has been sent to your new email address.",
        issued,
    )


@router.post("/email/confirm", response_model=EmailChangeConfirmed)
def confirm_email(token: str, db: Session = Depends(get_db)):
    """Apply a pending email change and sign out every session."""
    try:
        result = account.confirm_email_change(db, RawToken(token))
    except AuthenticationError:
        raise unauthorized()
    except AccountError as exc:
        raise account_error(exc)

    return EmailChangeConfirmed(
        new_email=result.new_email,
        revoked_tokens=result.revoked_tokens,
        deactivated_sessions=result.deactivated_sessions,
    )
