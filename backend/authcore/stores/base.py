# authcore/stores/base.py
"""
Persistence interfaces used by the auth services.

Each interface is a set of keyed reads and writes. Implementations must:
- raise ``ConflictError`` when ``insert_user`` hits the email uniqueness rule,
- raise ``InfrastructureError`` when the backing store is unavailable,
- implement ``delete_and_return_by_user_code_email`` as ONE atomic
  delete-returning statement (never read-then-delete).
"""
from __future__ import annotations

from datetime import datetime
from typing import Protocol

from authcore.auth.records import SessionRecord, UserRecord, VerificationCodeRecord


class CredentialStore(Protocol):
    def insert_user(self, user: UserRecord) -> None: ...

    def find_user_by_email(self, email: str) -> UserRecord | None: ...

    def find_user_by_id(self, user_id: str) -> UserRecord | None: ...

    def update_user_verified(self, user_id: str, verified: bool) -> None: ...


class SessionStore(Protocol):
    def insert_session(self, session: SessionRecord) -> None: ...

    def find_session_by_id(self, session_id: str) -> SessionRecord | None: ...

    def delete_session(self, session_id: str) -> None: ...

    def delete_sessions_by_user(self, user_id: str) -> None: ...

    def delete_expired_sessions(self, now: datetime) -> int: ...


class VerificationStore(Protocol):
    def delete_by_user(self, user_id: str) -> None: ...

    def insert_code(self, record: VerificationCodeRecord) -> None: ...

    def delete_and_return_by_user_code_email(
        self, user_id: str, code: str, email: str
    ) -> VerificationCodeRecord | None: ...
