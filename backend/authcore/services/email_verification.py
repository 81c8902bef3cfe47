from __future__ import annotations

import logging
from datetime import timedelta

from authcore.auth.records import VerificationCodeRecord
from authcore.core.config import settings
from authcore.core.security import generate_numeric_code
from authcore.core.timeutil import is_within_expiration, now_utc
from authcore.stores.base import VerificationStore

logger = logging.getLogger(__name__)


def code_ttl() -> timedelta:
    return timedelta(minutes=settings.EMAIL_VERIFICATION_CODE_TTL_MINUTES)


class VerificationCodeManager:
    def __init__(self, codes: VerificationStore) -> None:
        self.codes = codes

    def issue(self, user_id: str, email: str) -> str:
        """
        Replace any outstanding code for the user with a new one and return it
        for delivery.
        """
        self.codes.delete_by_user(user_id)

        code = generate_numeric_code(settings.EMAIL_VERIFICATION_CODE_LENGTH)
        self.codes.insert_code(
            VerificationCodeRecord(
                user_id=user_id,
                email=email,
                code=code,
                expires_at=now_utc() + code_ttl(),
            )
        )
        return code

    def consume(self, user_id: str, email: str, code: str) -> bool:
        """
        One attempt per issued code.

        The row is deleted before its expiry is checked, so an expired code is
        burned by the first attempt and any replay of a code fails, whether the
        first attempt succeeded or not.
        """
        if not code:
            return False

        record = self.codes.delete_and_return_by_user_code_email(user_id, code, email)
        if record is None:
            return False

        if not is_within_expiration(record.expires_at):
            logger.info("Expired verification code consumed for user_id=%s", user_id)
            return False

        return True
