from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import Request, Response

from authcore.auth.records import SessionRecord, UserRecord
from authcore.core.config import settings
from authcore.core.security import generate_session_id
from authcore.core.timeutil import ensure_utc, now_utc
from authcore.stores.base import CredentialStore, SessionStore

logger = logging.getLogger(__name__)


# -----------------------------
# Session settings
# -----------------------------
def session_ttl() -> timedelta:
    return timedelta(seconds=settings.session_ttl_seconds)


def session_fresh_window() -> timedelta:
    return timedelta(seconds=settings.session_fresh_seconds)


def session_cookie_max_age_seconds() -> int:
    return settings.session_ttl_seconds


class SessionManager:
    """
    Session lifecycle on top of a ``SessionStore``.

    A session is ACTIVE while inside its freshness window, STALE once the
    window has passed (the cookie gets reissued on validation), and EXPIRED
    once ``expires_at`` is reached. Reissuing the cookie does NOT move the
    stored ``expires_at``; only ``create`` writes an expiry.
    """

    def __init__(self, sessions: SessionStore, users: CredentialStore) -> None:
        self.sessions = sessions
        self.users = users

    def create(self, user_id: str) -> SessionRecord:
        session = SessionRecord(
            id=generate_session_id(),
            user_id=user_id,
            expires_at=now_utc() + session_ttl(),
            fresh=True,
        )
        self.sessions.insert_session(session)
        return session

    def validate(self, session_id: str) -> tuple[UserRecord | None, SessionRecord | None]:
        if not session_id:
            return None, None

        session = self.sessions.find_session_by_id(session_id)
        if session is None:
            return None, None

        now = now_utc()
        expires_at = ensure_utc(session.expires_at)
        if expires_at <= now:
            self.sessions.delete_session(session.id)
            return None, None

        user = self.users.find_user_by_id(session.user_id)
        if user is None:
            return None, None

        if self.is_stale(session, now=now):
            return user, session.as_fresh()
        return user, session

    def is_stale(self, session: SessionRecord, *, now: datetime | None = None) -> bool:
        remaining = ensure_utc(session.expires_at) - (now or now_utc())
        return remaining < session_ttl() - session_fresh_window()

    def invalidate(self, session_id: str) -> None:
        self.sessions.delete_session(session_id)

    def invalidate_all(self, user_id: str) -> None:
        self.sessions.delete_sessions_by_user(user_id)

    def delete_expired(self) -> int:
        count = self.sessions.delete_expired_sessions(now_utc())
        logger.info("Deleted %s expired sessions", count)
        return count


# -----------------------------
# Cookie helpers
# -----------------------------
def session_cookie_name() -> str:
    return str(settings.SESSION_COOKIE_NAME or "").strip() or "auth_session"


def cookie_path() -> str:
    return str(settings.SESSION_COOKIE_PATH or "").strip() or "/"


def cookie_samesite() -> str:
    v = str(settings.SESSION_COOKIE_SAMESITE or "lax").lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def set_session_cookie(resp: Response, session_id: str) -> None:
    resp.set_cookie(
        key=session_cookie_name(),
        value=session_id,
        httponly=True,
        secure=bool(settings.SESSION_COOKIE_SECURE),
        samesite=cookie_samesite(),
        max_age=session_cookie_max_age_seconds(),
        path=cookie_path(),
    )


def clear_session_cookie(resp: Response) -> None:
    resp.set_cookie(
        key=session_cookie_name(),
        value="",
        httponly=True,
        secure=bool(settings.SESSION_COOKIE_SECURE),
        samesite=cookie_samesite(),
        max_age=0,
        path=cookie_path(),
    )


def read_session_cookie(req: Request) -> str | None:
    val = req.cookies.get(session_cookie_name())
    if not val:
        return None
    val = val.strip()
    return val or None


def response_sets_session_cookie(resp: Response) -> bool:
    prefix = f"{session_cookie_name()}="
    return any(v.startswith(prefix) for v in resp.headers.getlist("set-cookie"))
