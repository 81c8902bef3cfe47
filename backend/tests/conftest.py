import os

# Keep the import-time engine away from any real database.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("EMAIL_ENABLED", "false")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from authcore.core import config as app_config
from authcore.core.base import Base
from authcore.core.database import get_db
from authcore.core.security import generate_session_id, generate_user_id, hash_password
from authcore.core.timeutil import now_utc
from authcore.auth.records import SessionRecord, UserRecord
from authcore.stores.sql import SqlCredentialStore, SqlSessionStore

# Import models so they register with SQLAlchemy metadata.
from authcore.models.user import User  # noqa: F401
from authcore.models.session import UserSession  # noqa: F401
from authcore.models.email_verification_code import EmailVerificationCode  # noqa: F401

ORIGIN = "http://testserver"
TEST_PASSWORD = "test_password_123"


@pytest.fixture()
def db_engine(tmp_path):
    # A file-backed SQLite database per test: the request guard and the route
    # handlers use separate connections, like they do against Postgres.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'auth.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests tweak the process-global settings object; restore it after each test.
    """
    keys = [
        "EMAIL_ENABLED",
        "EMAIL_PROVIDER",
        "FROM_EMAIL",
        "RESEND_API_KEY",
        "DKIM_PRIVATE_KEY",
        "DKIM_DOMAIN",
        "SESSION_TTL_DAYS",
        "SESSION_FRESH_DAYS",
        "SESSION_COOKIE_NAME",
        "TRUSTED_ORIGIN_HOSTS",
        "EMAIL_VERIFICATION_CODE_TTL_MINUTES",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    app_config.settings.EMAIL_ENABLED = False
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


@pytest.fixture()
def app(session_factory):
    import authcore.main as main

    fastapi_app = main.app
    previous_factory = fastapi_app.state.session_factory

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.state.session_factory = session_factory
    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.session_factory = previous_factory


@pytest.fixture()
def client(app):
    """
    Anonymous client whose requests carry a same-origin Origin header.
    """
    with TestClient(app) as c:
        c.headers.update({"Origin": ORIGIN})
        yield c


@pytest.fixture()
def outbox(monkeypatch):
    """
    Capture verification emails instead of delivering them.
    """
    sent: list[dict[str, str]] = []

    def _fake_send(to_email: str, subject: str, body: str) -> bool:
        sent.append({"to": to_email, "subject": subject, "body": body})
        return True

    monkeypatch.setattr("authcore.services.auth.send_email_or_log", _fake_send)
    return sent


@pytest.fixture()
def make_user(db_session):
    """
    Insert a user directly through the credential store.
    """

    def _make_user(email: str = "test@example.com", *, password: str = TEST_PASSWORD, verified: bool = False):
        user = UserRecord(
            id=generate_user_id(),
            email=email,
            hashed_password=hash_password(password),
            email_verified=verified,
        )
        SqlCredentialStore(db_session).insert_user(user)
        return user

    return _make_user


@pytest.fixture()
def make_session(db_session):
    """
    Insert a session row with an arbitrary remaining lifetime.
    """

    def _make_session(user_id: str, *, remaining: timedelta, session_id: str | None = None):
        session = SessionRecord(
            id=session_id or generate_session_id(),
            user_id=user_id,
            expires_at=now_utc() + remaining,
        )
        SqlSessionStore(db_session).insert_session(session)
        return session

    return _make_session
