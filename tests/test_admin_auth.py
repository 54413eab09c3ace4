import pytest

from sessions import SessionStore
from tests.conftest import ADMIN

ADMIN_ROUTES = [
    ("get", "/admin/dashboard"),
    ("get", "/api/admin/submissions"),
    ("delete", "/api/admin/clear-submissions"),
    ("post", "/api/admin/block-user"),
    ("post", "/api/admin/unblock-user"),
]


@pytest.mark.parametrize("method,path", ADMIN_ROUTES)
def test_admin_routes_require_session(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_wrong_password_is_rejected_and_grants_nothing(client):
    response = client.post("/api/admin/login", json={**ADMIN, "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}
    assert client.get("/api/admin/submissions").status_code == 401


def test_wrong_username_gives_same_error(client):
    response = client.post("/api/admin/login", json={**ADMIN, "username": "root"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_login_unlocks_admin_routes(client):
    response = client.post("/api/admin/login", json=ADMIN)

    assert response.status_code == 200
    assert "sessionId" in response.cookies
    assert client.get("/api/admin/submissions").status_code == 200
    assert client.get("/admin/dashboard").json() == {"submissions": 0, "blocked_users": []}


def test_forged_cookie_is_rejected(client):
    client.cookies.set("sessionId", "not-a-real-session")

    assert client.get("/api/admin/submissions").status_code == 401


def test_post_logout_destroys_session(admin_client, app):
    response = admin_client.post("/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    assert len(app.state.sessions) == 0
    assert admin_client.get("/api/admin/submissions").status_code == 401


def test_get_logout_redirects_to_login(admin_client):
    response = admin_client.get("/admin/logout", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/admin"
    assert admin_client.get("/api/admin/submissions").status_code == 401


def test_session_expires_after_idle_window(app, client):
    now = [1000.0]
    app.state.sessions = SessionStore(max_age_seconds=300, clock=lambda: now[0])
    client.post("/api/admin/login", json=ADMIN)

    now[0] += 299
    assert client.get("/api/admin/submissions").status_code == 200

    # the previous request restarted the idle window
    now[0] += 299
    assert client.get("/api/admin/submissions").status_code == 200

    now[0] += 301
    assert client.get("/api/admin/submissions").status_code == 401


def test_session_store_lifecycle():
    now = [0.0]
    store = SessionStore(max_age_seconds=10, clock=lambda: now[0])

    session_id = store.create()
    assert store.is_authenticated(session_id)
    assert not store.is_authenticated(None)
    assert not store.is_authenticated("unknown")

    now[0] = 11
    assert store.get(session_id) is None
    assert len(store) == 0

    other = store.create(authenticated=False)
    assert store.get(other) is not None
    assert not store.is_authenticated(other)
    assert store.destroy(other)
    assert not store.destroy(other)


def test_login_issues_fresh_session_id(client):
    first = client.post("/api/admin/login", json=ADMIN).cookies["sessionId"]
    second = client.post("/api/admin/login", json=ADMIN).cookies["sessionId"]

    assert first != second


def test_session_expired_by_another_request_is_just_unauthenticated():
    store = SessionStore(max_age_seconds=10, clock=lambda: 0.0)
    session_id = store.create()

    def racing_clock():
        # another request expires the same session between lookup and check
        store._sessions.pop(session_id, None)
        return 100.0

    store._clock = racing_clock

    assert store.is_authenticated(session_id) is False


def test_create_sweeps_stale_sessions():
    now = [0.0]
    store = SessionStore(max_age_seconds=10, clock=lambda: now[0])
    store.create()
    store.create()

    now[0] = 20
    fresh = store.create()

    assert len(store) == 1
    assert store.is_authenticated(fresh)
