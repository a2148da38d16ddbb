from fastapi import FastAPI
from fastapi.testclient import TestClient

from garage_ui.api import deps
from garage_ui.api.auth import router as auth_router
from garage_ui.api.sessions import router as sessions_router
from garage_ui.api.user import router as user_router
from garage_ui.config import get_settings
from garage_ui.exceptions import GENERIC_AUTH_FAILURE
from garage_ui.models.auth import RefreshToken, UserSession

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
PASSWORD = "TestPass123!"


def _build_test_client(session_factory):
    app = FastAPI()
    app.include_router(auth_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(user_router, prefix="/api")

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    return TestClient(app)


def _register(client: TestClient, email: str):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "name": email.split("@")[0], "password": PASSWORD},
    )
    assert response.status_code == 201
    return response.json()


def _login(client: TestClient, email: str, user_agent: str = CHROME_MAC, password: str = PASSWORD):
    response = client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        headers={"User-Agent": user_agent, "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    assert response.status_code == 200
    return response.json()


def _bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def _assert_unauthorized(response):
    assert response.status_code == 401
    assert response.json()["detail"] == GENERIC_AUTH_FAILURE
    assert response.headers["www-authenticate"] == "Bearer"


def test_login_returns_session_and_token_pair(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "alpha@example.com")

    tokens = _login(client, "alpha@example.com")

    assert tokens["session_id"].startswith("sess_")
    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"]
    assert tokens["refresh_token"]
    assert tokens["refresh_token_expiry"] > tokens["access_token_expiry"] - 900

    db = session_factory()
    try:
        session = db.get(UserSession, tokens["session_id"])
        assert session.ip_address == "203.0.113.9"
        assert session.device_info == "Chrome on Mac OS X (desktop)"
        stored = db.query(RefreshToken).one()
        assert stored.token_hash != tokens["refresh_token"]
    finally:
        db.close()


def test_login_rejects_bad_password(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "alpha@example.com")

    response = client.post(
        "/api/auth/login",
        json={"email": "alpha@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 401


def test_register_rejects_duplicate_email(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "alpha@example.com")

    response = client.post(
        "/api/auth/register",
        json={"email": "alpha@example.com", "name": "again", "password": PASSWORD},
    )

    assert response.status_code == 400


def test_refresh_rotates_token_and_rejects_replay(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "beta@example.com")
    tokens = _login(client, "beta@example.com")

    refresh_response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refresh_response.status_code == 200
    rotated = refresh_response.json()
    assert rotated["session_id"] == tokens["session_id"]
    assert rotated["refresh_token"] != tokens["refresh_token"]

    replay_response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    _assert_unauthorized(replay_response)

    whoami = client.get("/api/auth/whoami", headers=_bearer(rotated))
    assert whoami.status_code == 200
    assert whoami.json()["email"] == "beta@example.com"


def test_revoked_session_rejects_structurally_valid_access_token(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "gamma@example.com")
    tokens = _login(client, "gamma@example.com")

    logout_response = client.post("/api/auth/logout", headers=_bearer(tokens))
    assert logout_response.status_code == 200

    _assert_unauthorized(client.get("/api/auth/whoami", headers=_bearer(tokens)))
    _assert_unauthorized(client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}))


def test_auth_failures_look_identical(session_factory):
    client = _build_test_client(session_factory)

    _assert_unauthorized(client.get("/api/auth/whoami"))
    _assert_unauthorized(client.get("/api/auth/whoami", headers={"Authorization": "Bearer not-a-jwt"}))
    _assert_unauthorized(client.post("/api/auth/refresh", json={"refresh_token": "unknown"}))


def test_sessions_list_marks_current_device(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "delta@example.com")
    first = _login(client, "delta@example.com")
    second = _login(client, "delta@example.com", user_agent="Firefox/121.0")

    response = client.get("/api/auth/sessions", headers=_bearer(second))

    assert response.status_code == 200
    sessions = response.json()["sessions"]
    assert {entry["session_id"] for entry in sessions} == {first["session_id"], second["session_id"]}
    assert sessions[0]["session_id"] == second["session_id"]
    assert sessions[0]["is_current"] is True
    assert sessions[0]["state"] == "active"
    assert sessions[0]["device_info"] == "Firefox on Unknown OS (desktop)"


def test_revoke_single_session(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "eps@example.com")
    _register(client, "other@example.com")
    current = _login(client, "eps@example.com")
    stale = _login(client, "eps@example.com")
    foreign = _login(client, "other@example.com")

    forbidden = client.request(
        "DELETE",
        "/api/auth/sessions",
        json={"session_id": foreign["session_id"]},
        headers=_bearer(current),
    )
    _assert_unauthorized(forbidden)
    assert client.get("/api/auth/whoami", headers=_bearer(foreign)).status_code == 200

    response = client.request(
        "DELETE",
        "/api/auth/sessions",
        json={"session_id": stale["session_id"]},
        headers=_bearer(current),
    )
    assert response.status_code == 200
    _assert_unauthorized(client.get("/api/auth/whoami", headers=_bearer(stale)))
    assert client.get("/api/auth/whoami", headers=_bearer(current)).status_code == 200


def test_revoke_other_sessions(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "zeta@example.com")
    current = _login(client, "zeta@example.com")
    others = [_login(client, "zeta@example.com") for _ in range(2)]

    response = client.delete("/api/auth/sessions/others", headers=_bearer(current))

    assert response.status_code == 200
    assert response.json() == {"deactivated_count": 2}
    for tokens in others:
        _assert_unauthorized(client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}))
    assert client.post("/api/auth/refresh", json={"refresh_token": current["refresh_token"]}).status_code == 200


def test_revoke_all_sessions_includes_current(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "eta@example.com")
    logins = [_login(client, "eta@example.com") for _ in range(3)]

    response = client.delete("/api/auth/sessions/all", headers=_bearer(logins[0]))

    assert response.status_code == 200
    assert response.json() == {"deactivated_sessions": 3, "revoked_tokens": 3}
    _assert_unauthorized(client.get("/api/auth/sessions", headers=_bearer(logins[0])))

    db = session_factory()
    try:
        assert db.query(UserSession).filter(UserSession.is_active.is_(True)).count() == 0
        assert db.query(RefreshToken).filter(RefreshToken.is_revoked.is_(False)).count() == 0
    finally:
        db.close()


def test_change_password_forces_global_logout(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "theta@example.com")
    current = _login(client, "theta@example.com")
    other = _login(client, "theta@example.com")

    wrong = client.post(
        "/api/auth/change-password",
        json={"current_password": "not-my-password", "new_password": "NewPass456!"},
        headers=_bearer(current),
    )
    assert wrong.status_code == 400

    response = client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "NewPass456!"},
        headers=_bearer(current),
    )
    assert response.status_code == 200

    for tokens in (current, other):
        _assert_unauthorized(client.get("/api/auth/whoami", headers=_bearer(tokens)))
        _assert_unauthorized(client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}))

    _login(client, "theta@example.com", password="NewPass456!")


def test_password_reset_flow_signs_out_everywhere(session_factory, monkeypatch):
    monkeypatch.setattr(get_settings(), "debug", True)
    client = _build_test_client(session_factory)
    _register(client, "iota@example.com")
    tokens = _login(client, "iota@example.com")

    unknown = client.post("/api/auth/password/forgot", json={"email": "ghost@example.com"})
    assert unknown.status_code == 200
    assert unknown.json()["data"] is None

    issued = client.post("/api/auth/password/forgot", json={"email": "iota@example.com"})
    assert issued.status_code == 200
    assert issued.json()["message"] == unknown.json()["message"]
    reset_token = issued.json()["data"]["token"]

    response = client.post("/api/auth/password/reset", json={"token": reset_token, "password": "NewPass456!"})
    assert response.status_code == 200

    _assert_unauthorized(client.get("/api/auth/whoami", headers=_bearer(tokens)))
    _assert_unauthorized(client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}))
    _assert_unauthorized(client.post("/api/auth/password/reset", json={"token": reset_token, "password": "Other789!"}))
    _login(client, "iota@example.com", password="NewPass456!")


def test_forgot_password_hides_link_outside_debug(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "kappa@example.com")

    response = client.post("/api/auth/password/forgot", json={"email": "kappa@example.com"})

    assert response.status_code == 200
    assert response.json()["data"] is None


def test_email_change_flow_signs_out_everywhere(session_factory, monkeypatch):
    monkeypatch.setattr(get_settings(), "debug", True)
    client = _build_test_client(session_factory)
    _register(client, "lambda@example.com")
    _register(client, "taken@example.com")
    tokens = _login(client, "lambda@example.com")

    wrong = client.post(
        "/api/user/email/change",
        json={"new_email": "mu@example.com", "password": "not-my-password"},
        headers=_bearer(tokens),
    )
    assert wrong.status_code == 400

    taken = client.post(
        "/api/user/email/change",
        json={"new_email": "taken@example.com", "password": PASSWORD},
        headers=_bearer(tokens),
    )
    assert taken.status_code == 409

    requested = client.post(
        "/api/user/email/change",
        json={"new_email": "mu@example.com", "password": PASSWORD},
        headers=_bearer(tokens),
    )
    assert requested.status_code == 200
    change_token = requested.json()["data"]["token"]

    confirmed = client.post("/api/user/email/confirm", params={"token": change_token})
    assert confirmed.status_code == 200
    assert confirmed.json() == {"new_email": "mu@example.com", "revoked_tokens": 1, "deactivated_sessions": 1}

    _assert_unauthorized(client.get("/api/auth/whoami", headers=_bearer(tokens)))
    _assert_unauthorized(client.post("/api/user/email/confirm", params={"token": change_token}))
    new_tokens = _login(client, "mu@example.com")
    assert client.get("/api/auth/whoami", headers=_bearer(new_tokens)).json()["email"] == "mu@example.com"


def test_update_profile(session_factory):
    client = _build_test_client(session_factory)
    _register(client, "nu@example.com")
    tokens = _login(client, "nu@example.com")

    response = client.put("/api/user/profile", json={"name": "  Cluster Admin  "}, headers=_bearer(tokens))
    assert response.status_code == 200
    assert response.json()["name"] == "Cluster Admin"

    too_short = client.put("/api/user/profile", json={"name": " a "}, headers=_bearer(tokens))
    assert too_short.status_code == 422
