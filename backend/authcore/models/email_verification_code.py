from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String

from authcore.core.base import Base


class EmailVerificationCode(Base):
    __tablename__ = "email_verification_codes"

    id = Column(Integer, primary_key=True)
    # At most one outstanding code per user.
    user_id = Column(String(15), unique=True, nullable=False)
    email = Column(String(255), nullable=False)
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
