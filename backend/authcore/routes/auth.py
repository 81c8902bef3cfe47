# authcore/routes/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from authcore.auth.context import AuthContext
from authcore.auth.records import UserRecord
from authcore.dependencies.auth import get_auth_context, get_auth_service, get_current_user
from authcore.schemas.auth import EmailVerificationIn, LoginIn, MessageOut, SignupIn, UserOut
from authcore.services.auth import AuthService
from authcore.services.sessions import clear_session_cookie, set_session_cookie

router = APIRouter(prefix="/auth", tags=["auth"])


# -----------------------------
# Routes
# -----------------------------
# Plain `def` handlers: FastAPI runs them in its threadpool, which keeps
# Argon2 hashing off the event loop.
@router.post("/signup", response_model=MessageOut)
def signup(payload: SignupIn, response: Response, service: AuthService = Depends(get_auth_service)):
    _, session = service.signup(payload.email, payload.password)
    set_session_cookie(response, session.id)
    return {"message": "Account created. Enter the verification code we emailed you."}


@router.post("/login", response_model=MessageOut)
def login(payload: LoginIn, response: Response, service: AuthService = Depends(get_auth_service)):
    _, session = service.login(payload.email, payload.password)
    set_session_cookie(response, session.id)
    return {"message": "Logged in"}


@router.post("/logout", response_model=MessageOut)
def logout(
    response: Response,
    auth: AuthContext = Depends(get_auth_context),
    service: AuthService = Depends(get_auth_service),
):
    """
    Invalidate the current session (if any) and always clear the cookie.
    """
    service.logout(auth.session)
    clear_session_cookie(response)
    return {"message": "Logged out"}


@router.post("/email-verification", response_model=MessageOut)
def verify_email(
    payload: EmailVerificationIn,
    response: Response,
    auth: AuthContext = Depends(get_auth_context),
    service: AuthService = Depends(get_auth_service),
):
    # The current session is among those invalidated; the new one replaces it.
    session = service.verify_email(auth.user, payload.code)
    set_session_cookie(response, session.id)
    return {"message": "Email verified"}


@router.get("/me", response_model=UserOut)
def me(user: UserRecord = Depends(get_current_user)):
    return user.to_public_dict()
