# authcore/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from authcore.auth.context import AuthContext
from authcore.auth.records import UserRecord
from authcore.core.database import get_db
from authcore.core.errors import AuthenticationError
from authcore.services.auth import AuthService
from authcore.services.email_verification import VerificationCodeManager
from authcore.services.sessions import SessionManager
from authcore.stores.sql import SqlCredentialStore, SqlSessionStore, SqlVerificationStore


def build_session_manager(db: Session) -> SessionManager:
    return SessionManager(sessions=SqlSessionStore(db), users=SqlCredentialStore(db))


def build_auth_service(db: Session) -> AuthService:
    users = SqlCredentialStore(db)
    return AuthService(
        users=users,
        sessions=SessionManager(sessions=SqlSessionStore(db), users=users),
        codes=VerificationCodeManager(SqlVerificationStore(db)),
    )


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return build_auth_service(db)


def get_auth_context(request: Request) -> AuthContext:
    """
    The context resolved by the request guard. Requests that never went
    through the guard are treated as anonymous.
    """
    auth = getattr(request.state, "auth", None)
    if isinstance(auth, AuthContext):
        return auth
    return AuthContext.anonymous()


def get_current_user(auth: AuthContext = Depends(get_auth_context)) -> UserRecord:
    if not auth.is_authenticated:
        raise AuthenticationError()
    return auth.user
