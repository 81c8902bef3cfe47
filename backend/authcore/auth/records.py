# authcore/auth/records.py
"""
Store-agnostic records passed between the stores and the auth services.

Stores translate their own rows into these, so nothing above the store layer
imports SQLAlchemy.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    hashed_password: str | None = None
    email_verified: bool = False

    def to_public_dict(self) -> dict:
        """Safe subset for API responses (never includes the password hash)."""
        return {
            "id": self.id,
            "email": self.email,
            "email_verified": self.email_verified,
        }


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: str
    expires_at: datetime
    # True when the caller must (re)issue the session cookie.
    fresh: bool = False

    def as_fresh(self) -> SessionRecord:
        return replace(self, fresh=True)


@dataclass(frozen=True)
class VerificationCodeRecord:
    user_id: str
    email: str
    code: str
    expires_at: datetime
