# authcore/models/session.py
from sqlalchemy import Column, DateTime, ForeignKey, String

from authcore.core.base import Base


class UserSession(Base):
    __tablename__ = "sessions"

    # The session id is also the bearer credential carried in the cookie.
    id = Column(String(64), primary_key=True)

    user_id = Column(String(15), ForeignKey("users.id"), nullable=False, index=True)

    # Absolute expiration. Cookie reissue on stale sessions does not move it.
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
