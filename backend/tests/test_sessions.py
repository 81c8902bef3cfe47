from __future__ import annotations

from datetime import timedelta

from authcore.core import config as app_config
from authcore.core.timeutil import ensure_utc, now_utc
from authcore.models.session import UserSession
from authcore.services.sessions import SessionManager
from authcore.stores.sql import SqlCredentialStore, SqlSessionStore


def _manager(db_session) -> SessionManager:
    return SessionManager(sessions=SqlSessionStore(db_session), users=SqlCredentialStore(db_session))


def _stored_expiry(db_session, session_id: str):
    db_session.expire_all()
    row = db_session.get(UserSession, session_id)
    return ensure_utc(row.expires_at) if row else None


def test_create_persists_session_with_ttl(db_session, make_user):
    user = make_user()
    before = now_utc()

    session = _manager(db_session).create(user.id)

    assert session.fresh is True
    assert session.user_id == user.id
    expected = before + timedelta(days=app_config.settings.SESSION_TTL_DAYS)
    assert abs((_stored_expiry(db_session, session.id) - expected).total_seconds()) < 5


def test_validate_active_session_is_not_fresh(db_session, make_user, make_session):
    user = make_user()
    session = make_session(user.id, remaining=timedelta(days=29))

    found_user, found = _manager(db_session).validate(session.id)

    assert found_user is not None and found_user.id == user.id
    assert found is not None and found.id == session.id
    assert found.fresh is False


def test_validate_stale_session_marks_fresh_without_moving_expiry(db_session, make_user, make_session):
    user = make_user()
    # 30 day TTL, 15 day freshness window -> stale once less than 15 days remain.
    session = make_session(user.id, remaining=timedelta(days=5))
    stored_before = _stored_expiry(db_session, session.id)

    found_user, found = _manager(db_session).validate(session.id)

    assert found_user is not None
    assert found is not None and found.fresh is True
    assert found.id == session.id
    assert _stored_expiry(db_session, session.id) == stored_before


def test_validate_expired_session_deletes_row(db_session, make_user, make_session):
    user = make_user()
    session = make_session(user.id, remaining=timedelta(seconds=-1))

    assert _manager(db_session).validate(session.id) == (None, None)
    assert _stored_expiry(db_session, session.id) is None


def test_validate_unknown_or_empty_id(db_session):
    manager = _manager(db_session)
    assert manager.validate("does-not-exist") == (None, None)
    assert manager.validate("") == (None, None)


def test_invalidate_is_idempotent(db_session, make_user):
    user = make_user()
    manager = _manager(db_session)
    session = manager.create(user.id)

    manager.invalidate(session.id)
    manager.invalidate(session.id)

    assert manager.validate(session.id) == (None, None)


def test_invalidate_all_only_touches_one_user(db_session, make_user):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    manager = _manager(db_session)
    a1 = manager.create(alice.id)
    a2 = manager.create(alice.id)
    b1 = manager.create(bob.id)

    manager.invalidate_all(alice.id)

    assert manager.validate(a1.id) == (None, None)
    assert manager.validate(a2.id) == (None, None)
    assert manager.validate(b1.id)[1] is not None


def test_delete_expired_removes_only_expired(db_session, make_user, make_session):
    user = make_user()
    make_session(user.id, remaining=timedelta(hours=-2))
    make_session(user.id, remaining=timedelta(minutes=-1))
    live = make_session(user.id, remaining=timedelta(days=1))

    assert _manager(db_session).delete_expired() == 2
    db_session.expire_all()
    assert [row.id for row in db_session.query(UserSession).all()] == [live.id]


def test_custom_freshness_window(db_session, make_user, make_session):
    app_config.settings.SESSION_TTL_DAYS = 10
    app_config.settings.SESSION_FRESH_DAYS = 2
    user = make_user()
    manager = _manager(db_session)

    recent = make_session(user.id, remaining=timedelta(days=9))
    older = make_session(user.id, remaining=timedelta(days=7))

    assert manager.validate(recent.id)[1].fresh is False
    assert manager.validate(older.id)[1].fresh is True
