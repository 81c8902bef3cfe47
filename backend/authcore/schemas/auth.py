# authcore/schemas/auth.py
from pydantic import BaseModel, Field


# Emails are plain strings here: format checks happen in the auth service,
# which keeps the address exactly as submitted.
class SignupIn(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=1024)


class LoginIn(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=1024)


class EmailVerificationIn(BaseModel):
    code: str = Field(min_length=1, max_length=16)


class MessageOut(BaseModel):
    message: str


class UserOut(BaseModel):
    id: str
    email: str
    email_verified: bool
