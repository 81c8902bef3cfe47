# authcore/auth/context.py
"""
Request-scoped authentication state.

The request guard resolves the session cookie once per request and stores an
``AuthContext`` on ``request.state.auth``. Handlers read it through the
dependencies in ``authcore.dependencies.auth``; there is no module-level
"current user".
"""
from __future__ import annotations

from dataclasses import dataclass

from authcore.auth.records import SessionRecord, UserRecord


@dataclass(frozen=True)
class AuthContext:
    user: UserRecord | None = None
    session: SessionRecord | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.session is not None

    @classmethod
    def anonymous(cls) -> AuthContext:
        return cls(user=None, session=None)
