from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from authcore.auth.context import AuthContext
from authcore.auth.records import SessionRecord, UserRecord
from authcore.core.config import settings
from authcore.core.database import SessionLocal
from authcore.core.errors import AuthCoreError, InfrastructureError, OriginRejected
from authcore.dependencies.auth import build_session_manager
from authcore.services.sessions import (
    clear_session_cookie,
    read_session_cookie,
    response_sets_session_cookie,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _host_of(url: str) -> str | None:
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return None
    if port == _DEFAULT_PORTS[parts.scheme]:
        port = None
    return f"{parts.hostname}:{port}" if port else parts.hostname


def verify_request_origin(origin: str | None, allowed_domains: Iterable[str]) -> bool:
    """
    True when the host of ``origin`` equals one of ``allowed_domains``.

    Allowed entries may be bare hosts (``app.test``, ``app.test:8000``) or
    full origins (``https://app.test``).
    """
    if not origin:
        return False
    origin_host = _host_of(origin)
    if origin_host is None:
        return False
    for domain in allowed_domains:
        if not domain:
            continue
        candidate = domain if domain.startswith(("http://", "https://")) else f"https://{domain}"
        if _host_of(candidate) == origin_host:
            return True
    return False


def _error_response(exc: AuthCoreError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _resolve_session(app: FastAPI, session_id: str) -> tuple[UserRecord | None, SessionRecord | None]:
    factory = getattr(app.state, "session_factory", None) or SessionLocal
    db = factory()
    try:
        return build_session_manager(db).validate(session_id)
    finally:
        db.close()


def register_request_guard(app: FastAPI) -> None:
    @app.middleware("http")
    async def request_guard(request: Request, call_next):
        """
        Runs before every handler:
          1. state-changing requests must carry an Origin matching the Host
          2. the session cookie (if any) is resolved into request.state.auth
          3. the cookie is cleared when invalid, reissued when stale
        """
        request.state.auth = AuthContext.anonymous()

        if request.method.upper() not in SAFE_METHODS:
            origin = request.headers.get("origin")
            host = request.headers.get("host")
            if not host or not verify_request_origin(origin, [host, *settings.TRUSTED_ORIGIN_HOSTS]):
                logger.warning(
                    "Rejected %s %s: origin=%r host=%r",
                    request.method,
                    request.url.path,
                    origin,
                    host,
                )
                return _error_response(OriginRejected())

        session_id = read_session_cookie(request)
        if not session_id:
            return await call_next(request)

        try:
            user, session = await run_in_threadpool(_resolve_session, request.app, session_id)
        except InfrastructureError as exc:
            return _error_response(exc)

        if session is not None:
            request.state.auth = AuthContext(user=user, session=session)

        response = await call_next(request)

        # A handler that issued or cleared the session cookie owns it for this response.
        if response_sets_session_cookie(response):
            return response
        if session is None:
            clear_session_cookie(response)
        elif session.fresh:
            set_session_cookie(response, session.id)
        return response
