# authcore/services/auth.py
"""
Signup, login, logout and email verification.

Responsibilities:
- Boundary validation of email/password
- Composing the credential store, password hasher, session manager,
  verification code manager and notifier
- Keeping every failure generic (no email enumeration, no hint about which
  credential or step failed)

Cookie handling stays with the caller: flows return the session that should
be put in the cookie.
"""
from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email

from authcore.auth.records import SessionRecord, UserRecord
from authcore.core.errors import AuthenticationError, ValidationError
from authcore.core.security import burn_password_check, generate_user_id, hash_password, verify_password
from authcore.services.email import send_email_or_log
from authcore.services.email_verification import VerificationCodeManager
from authcore.services.sessions import SessionManager
from authcore.stores.base import CredentialStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_CODE = "Invalid or expired verification code"

VERIFICATION_SUBJECT = "Welcome"


def require_valid_email(email: str | None) -> str:
    """Syntax-only check; the address is returned exactly as submitted."""
    value = email or ""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("email", "Invalid email address") from exc
    return value


def require_password(password: str | None) -> str:
    if not password:
        raise ValidationError("password", "Password is required")
    return password


def verification_email_body(code: str) -> str:
    return f"Your verification code is {code}"


class AuthService:
    def __init__(
        self,
        users: CredentialStore,
        sessions: SessionManager,
        codes: VerificationCodeManager,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.codes = codes

    def signup(self, email: str, password: str) -> tuple[UserRecord, SessionRecord]:
        email = require_valid_email(email)
        password = require_password(password)

        user = UserRecord(
            id=generate_user_id(),
            email=email,
            hashed_password=hash_password(password),
            email_verified=False,
        )
        # Duplicate email surfaces as a generic ConflictError from the store.
        self.users.insert_user(user)
        logger.info("New user created: id=%s", user.id)

        code = self.codes.issue(user.id, user.email)
        # Delivery failure does not undo the account.
        if not send_email_or_log(user.email, VERIFICATION_SUBJECT, verification_email_body(code)):
            logger.warning("Verification email not delivered for user_id=%s", user.id)

        session = self.sessions.create(user.id)
        return user, session

    def login(self, email: str, password: str) -> tuple[UserRecord, SessionRecord]:
        email = require_valid_email(email)
        password = require_password(password)

        user = self.users.find_user_by_email(email)
        # No stored hash behaves like an unknown email, including the timing.
        if user is None or not user.hashed_password:
            burn_password_check(password)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, user.hashed_password):
            raise AuthenticationError(INVALID_CREDENTIALS)

        return user, self.sessions.create(user.id)

    def logout(self, session: SessionRecord | None) -> None:
        if session is not None:
            self.sessions.invalidate(session.id)

    def verify_email(self, user: UserRecord | None, code: str) -> SessionRecord:
        """
        Consume the code and, on success, replace every session of the user
        with one new session (the caller's current session included).
        """
        if user is None:
            raise AuthenticationError()

        if not self.codes.consume(user.id, user.email, code):
            raise AuthenticationError(INVALID_CODE)

        self.sessions.invalidate_all(user.id)
        self.users.update_user_verified(user.id, True)
        logger.info("Email verified: user_id=%s", user.id)

        return self.sessions.create(user.id)
