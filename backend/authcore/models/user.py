# authcore/models/user.py
from sqlalchemy import Boolean, Column, String, false

from authcore.core.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(15), primary_key=True)

    # Stored exactly as submitted; uniqueness is case-sensitive.
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Nullable so that accounts without a password remain representable.
    hashed_password = Column(String(255), nullable=True)

    email_verified = Column(Boolean, nullable=False, default=False, server_default=false())
