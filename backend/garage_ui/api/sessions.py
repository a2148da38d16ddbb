"""Active-session management endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from garage_ui.api.deps import AuthContext, get_current_auth, get_db, unauthorized
from garage_ui.exceptions import AuthenticationError
from garage_ui.schemas.auth import (
    LogoutAllResponse,
    LogoutOthersResponse,
    MessageResponse,
    SessionListResponse,
    SessionResponse,
    SessionRevoke,
)
from garage_ui.services import clock, session_lifecycle

router = APIRouter(prefix="/auth/sessions", tags=["sessions"])


@router.get("", response_model=SessionListResponse)
def list_sessions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_auth),
):
    """List the caller's active sessions, most recently used first."""
    now = clock.now()
    records = session_lifecycle.list_sessions(db, auth.user_id)
    return SessionListResponse(
        sessions=[
            SessionResponse(
                session_id=record.id,
                ip_address=record.ip_address,
                device_info=record.device_info,
                state=session_lifecycle.session_state(record, now).value,
                is_current=record.id == auth.session_id,
                last_activity_at=record.last_activity_at,
                expires_at=record.expires_at,
                created_at=record.created_at,
            )
            for record in records
        ]
    )


@router.delete("", response_model=MessageResponse)
def revoke_session(
    body: SessionRevoke,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_auth),
):
    """Sign out one of the caller's sessions."""
    try:
        session_lifecycle.revoke_user_session(db, auth.user_id, body.session_id)
    except AuthenticationError:
        raise unauthorized()
    return MessageResponse(message="Session revoked successfully")


@router.delete("/others", response_model=LogoutOthersResponse)
def revoke_other_sessions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_auth),
):
    """Sign out every device except the current one."""
    deactivated = session_lifecycle.logout_others(db, auth.user_id, auth.session_id)
    return LogoutOthersResponse(deactivated_count=deactivated)


@router.delete("/all", response_model=LogoutAllResponse)
def revoke_all_sessions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_current_auth),
):
    """Sign out every device, the current one included."""
    deactivated, revoked = session_lifecycle.logout_all(db, auth.user_id)
    return LogoutAllResponse(deactivated_sessions=deactivated, revoked_tokens=revoked)
