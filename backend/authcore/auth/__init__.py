# authcore/auth/__init__.py
"""
Authentication records shared across stores, services and the request guard.

This package contains:
- records.py: UserRecord / SessionRecord / VerificationCodeRecord
- context.py: AuthContext, the per-request resolved user + session
"""
from authcore.auth.context import AuthContext
from authcore.auth.records import SessionRecord, UserRecord, VerificationCodeRecord

__all__ = ["AuthContext", "SessionRecord", "UserRecord", "VerificationCodeRecord"]
