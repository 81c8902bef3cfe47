# authcore/core/security.py
from __future__ import annotations

import secrets
import string

from passlib.context import CryptContext

# Argon2id: memory-hard, random salt embedded in every hash.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ID_ALPHABET = string.ascii_lowercase + string.digits
USER_ID_LENGTH = 15
SESSION_ID_LENGTH = 40


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Malformed or missing stored hashes count as a mismatch instead of raising.
    """
    if not password_hash or password is None:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def burn_password_check(password: str) -> None:
    """
    Run one full verification against a throwaway hash.

    Login calls this when the email is unknown or the account has no stored
    hash, so that the response takes as long as a wrong-password attempt.
    """
    verify_password(password, _DUMMY_HASH)


# Built once at import so the first unknown-email login costs the same as later ones.
_DUMMY_HASH = hash_password(secrets.token_urlsafe(16))


# -------------------------
# Random identifiers
# -------------------------
def generate_random_string(length: int, alphabet: str) -> str:
    """Each character is drawn independently and uniformly from ``alphabet``."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_user_id() -> str:
    return generate_random_string(USER_ID_LENGTH, ID_ALPHABET)


def generate_session_id() -> str:
    return generate_random_string(SESSION_ID_LENGTH, ID_ALPHABET)


def generate_numeric_code(length: int) -> str:
    return generate_random_string(length, string.digits)
