from __future__ import annotations

from datetime import timedelta

import pytest

from authcore.core import config as app_config
from authcore.core.errors import InfrastructureError
from authcore.core.timeutil import ensure_utc
from authcore.middleware.request_guard import verify_request_origin
from authcore.models.session import UserSession
from authcore.services.sessions import session_cookie_name


# -----------------------------
# verify_request_origin
# -----------------------------
@pytest.mark.parametrize(
    "origin, allowed, expected",
    [
        ("https://app.test", ["app.test"], True),
        ("http://app.test:8000", ["app.test:8000"], True),
        ("https://app.test", ["https://app.test"], True),
        ("https://app.test:443", ["app.test"], True),
        ("http://app.test:80", ["app.test"], True),
        ("https://app.test", ["app.test:443"], True),
        ("https://app.test:80", ["app.test"], False),
        ("https://evil.test", ["app.test"], False),
        ("https://app.test.evil.test", ["app.test"], False),
        ("http://app.test:8000", ["app.test"], False),
        ("null", ["app.test"], False),
        ("evil.test", ["app.test"], False),
        ("ftp://app.test", ["app.test"], False),
        ("", ["app.test"], False),
        (None, ["app.test"], False),
        ("https://app.test", [], False),
    ],
)
def test_verify_request_origin(origin, allowed, expected):
    assert verify_request_origin(origin, allowed) is expected


# -----------------------------
# Origin check
# -----------------------------
def test_cross_origin_post_is_rejected_before_the_store(client, app):
    def _must_not_be_called():
        raise AssertionError("session store touched on a rejected request")

    app.state.session_factory = _must_not_be_called
    client.cookies.set(session_cookie_name(), "x" * 40)

    res = client.post("/auth/logout", headers={"Origin": "http://evil.test", "Host": "app.test"})

    assert res.status_code == 403
    assert res.json() == {"error": "FORBIDDEN", "message": "Origin not allowed"}


def test_bare_host_origin_is_rejected_on_post_only(client):
    headers = {"Origin": "evil.test", "Host": "app.test"}

    res = client.post("/auth/logout", headers=headers)
    assert res.status_code == 403
    assert res.json()["error"] == "FORBIDDEN"

    assert client.get("/health", headers=headers).status_code == 200


def test_explicit_default_port_matches_host(client):
    res = client.post("/auth/logout", headers={"Origin": "https://app.test:443", "Host": "app.test"})
    assert res.status_code == 200


def test_post_without_origin_is_rejected(client):
    del client.headers["Origin"]

    res = client.post("/auth/login", json={"email": "a@b.com", "password": "secret"})
    assert res.status_code == 403
    assert res.json()["error"] == "FORBIDDEN"


def test_safe_methods_skip_the_origin_check(client):
    res = client.get("/health", headers={"Origin": "http://evil.test", "Host": "app.test"})
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_trusted_origin_hosts_are_accepted(client):
    app_config.settings.TRUSTED_ORIGIN_HOSTS = ["app.example.com"]

    res = client.post("/auth/logout", headers={"Origin": "https://app.example.com"})
    assert res.status_code == 200


# -----------------------------
# Session resolution + cookie upkeep
# -----------------------------
def test_active_session_is_resolved_without_new_cookie(client, make_user, make_session):
    user = make_user()
    session = make_session(user.id, remaining=timedelta(days=29))
    client.cookies.set(session_cookie_name(), session.id)

    res = client.get("/auth/me")
    assert res.status_code == 200
    assert res.json()["id"] == user.id
    assert res.headers.get_list("set-cookie") == []


def test_stale_session_cookie_is_reissued(client, db_session, make_user, make_session):
    user = make_user()
    session = make_session(user.id, remaining=timedelta(days=10))
    client.cookies.set(session_cookie_name(), session.id)

    res = client.get("/auth/me")
    assert res.status_code == 200

    set_cookies = res.headers.get_list("set-cookie")
    assert len(set_cookies) == 1
    assert set_cookies[0].startswith(f"{session_cookie_name()}={session.id}")
    assert "Max-Age=2592000" in set_cookies[0]
    assert "HttpOnly" in set_cookies[0]

    # Only the cookie is refreshed; the stored expiry stays where it was.
    db_session.expire_all()
    row = db_session.get(UserSession, session.id)
    assert ensure_utc(row.expires_at) == session.expires_at


def test_unknown_session_cookie_is_cleared(client):
    client.cookies.set(session_cookie_name(), "y" * 40)

    res = client.get("/auth/me")
    assert res.status_code == 401
    set_cookies = res.headers.get_list("set-cookie")
    assert len(set_cookies) == 1
    assert "Max-Age=0" in set_cookies[0]


def test_expired_session_is_deleted_and_cookie_cleared(client, db_session, make_user, make_session):
    user = make_user()
    session = make_session(user.id, remaining=timedelta(seconds=-1))
    client.cookies.set(session_cookie_name(), session.id)

    res = client.get("/health")
    assert res.status_code == 200
    assert any("Max-Age=0" in c for c in res.headers.get_list("set-cookie"))

    db_session.expire_all()
    assert db_session.get(UserSession, session.id) is None


def test_store_failure_in_guard_returns_error_envelope(client, app):
    def _broken_factory():
        raise InfrastructureError()

    app.state.session_factory = _broken_factory
    client.cookies.set(session_cookie_name(), "z" * 40)

    res = client.get("/health")
    assert res.status_code == 500
    assert res.json() == {"error": "INTERNAL_ERROR", "message": "Internal server error"}
