# authcore/core/errors.py
"""
Error taxonomy for the authentication core.

Services raise these; ``authcore.main`` maps them onto the standard JSON error
envelope. Messages are deliberately generic: they must never tell a caller
whether an email exists, which credential was wrong, or which step failed.
"""
from __future__ import annotations


class AuthCoreError(Exception):
    status_code: int = 400
    error_code: str = "HTTP_ERROR"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def details(self) -> dict | None:
        return None

    def to_payload(self) -> dict:
        payload: dict = {"error": self.error_code, "message": self.message}
        details = self.details()
        if details:
            payload["details"] = details
        return payload


class ValidationError(AuthCoreError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid input"

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message)

    def details(self) -> dict | None:
        return {"field": self.field}


class ConflictError(AuthCoreError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Unable to create account"


class AuthenticationError(AuthCoreError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Authentication failed"


class OriginRejected(AuthCoreError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Origin not allowed"


class InfrastructureError(AuthCoreError):
    """Store or network failure. Fatal for the request; never retried here."""

    status_code = 500
    error_code = "INTERNAL_ERROR"
    default_message = "Internal server error"
