# authcore/stores/sql.py
"""
SQLAlchemy implementations of the store interfaces.

Works against PostgreSQL (prod) and SQLite (dev/tests). Every write commits
immediately: the auth flows are a sequence of independent keyed operations
and do not attempt partial-state cleanup on failure.
"""
from __future__ import annotations

import functools
import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from authcore.auth.records import SessionRecord, UserRecord, VerificationCodeRecord
from authcore.core.errors import ConflictError, InfrastructureError
from authcore.core.timeutil import ensure_utc
from authcore.models.email_verification_code import EmailVerificationCode
from authcore.models.session import UserSession
from authcore.models.user import User

logger = logging.getLogger(__name__)


def _translate_db_errors(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("Store operation %s.%s failed", type(self).__name__, fn.__name__)
            try:
                self.db.rollback()
            except SQLAlchemyError:
                logger.warning("Rollback after failed %s also failed", fn.__name__)
            raise InfrastructureError() from exc

    return wrapper


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        email_verified=bool(row.email_verified),
    )


def _session_record(row: UserSession) -> SessionRecord:
    return SessionRecord(id=row.id, user_id=row.user_id, expires_at=ensure_utc(row.expires_at))


class SqlCredentialStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    @_translate_db_errors
    def insert_user(self, user: UserRecord) -> None:
        self.db.add(
            User(
                id=user.id,
                email=user.email,
                hashed_password=user.hashed_password,
                email_verified=user.email_verified,
            )
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError() from exc

    @_translate_db_errors
    def find_user_by_email(self, email: str) -> UserRecord | None:
        row = self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        return _user_record(row) if row else None

    @_translate_db_errors
    def find_user_by_id(self, user_id: str) -> UserRecord | None:
        row = self.db.get(User, user_id)
        return _user_record(row) if row else None

    @_translate_db_errors
    def update_user_verified(self, user_id: str, verified: bool) -> None:
        self.db.execute(update(User).where(User.id == user_id).values(email_verified=verified))
        self.db.commit()


class SqlSessionStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    @_translate_db_errors
    def insert_session(self, session: SessionRecord) -> None:
        self.db.add(UserSession(id=session.id, user_id=session.user_id, expires_at=session.expires_at))
        self.db.commit()

    @_translate_db_errors
    def find_session_by_id(self, session_id: str) -> SessionRecord | None:
        row = self.db.execute(select(UserSession).where(UserSession.id == session_id)).scalar_one_or_none()
        return _session_record(row) if row else None

    @_translate_db_errors
    def delete_session(self, session_id: str) -> None:
        self.db.execute(
            delete(UserSession).where(UserSession.id == session_id),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()

    @_translate_db_errors
    def delete_sessions_by_user(self, user_id: str) -> None:
        self.db.execute(
            delete(UserSession).where(UserSession.user_id == user_id),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()

    @_translate_db_errors
    def delete_expired_sessions(self, now: datetime) -> int:
        result = self.db.execute(
            delete(UserSession).where(UserSession.expires_at <= now),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()
        return int(result.rowcount or 0)


class SqlVerificationStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    @_translate_db_errors
    def delete_by_user(self, user_id: str) -> None:
        self.db.execute(
            delete(EmailVerificationCode).where(EmailVerificationCode.user_id == user_id),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()

    @_translate_db_errors
    def insert_code(self, record: VerificationCodeRecord) -> None:
        self.db.add(
            EmailVerificationCode(
                user_id=record.user_id,
                email=record.email,
                code=record.code,
                expires_at=record.expires_at,
            )
        )
        self.db.commit()

    @_translate_db_errors
    def delete_and_return_by_user_code_email(
        self, user_id: str, code: str, email: str
    ) -> VerificationCodeRecord | None:
        # Single DELETE ... RETURNING: two concurrent submissions of the same
        # code cannot both get the row back.
        stmt = (
            delete(EmailVerificationCode)
            .where(
                EmailVerificationCode.user_id == user_id,
                EmailVerificationCode.code == code,
                EmailVerificationCode.email == email,
            )
            .returning(
                EmailVerificationCode.user_id,
                EmailVerificationCode.email,
                EmailVerificationCode.code,
                EmailVerificationCode.expires_at,
            )
        )
        row = self.db.execute(stmt, execution_options={"synchronize_session": False}).first()
        self.db.commit()
        if row is None:
            return None
        return VerificationCodeRecord(
            user_id=row.user_id,
            email=row.email,
            code=row.code,
            expires_at=ensure_utc(row.expires_at),
        )
