"""Session cookie handling and FastAPI access-control dependencies.

HTML routes depend on `require_session`, which raises `LoginRequired`
(turned into a redirect to /login by the app's exception handler). JSON
routes depend on `require_api_session`, which answers 401 instead.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response

from .config import settings
from .sessions import SessionRecord, SessionStore


class LoginRequired(Exception):
    """Raised when a protected HTML route is hit without a live session."""


def get_session_store(request: Request) -> SessionStore:
    """Return the process-wide store created by the application lifespan."""
    return request.app.state.session_store


def get_current_session(
    request: Request, store: SessionStore = Depends(get_session_store)
) -> Optional[SessionRecord]:
    return store.resolve(request.cookies.get(settings.SESSION_COOKIE_NAME))


def require_session(current: Optional[SessionRecord] = Depends(get_current_session)) -> SessionRecord:
    if current is None:
        raise LoginRequired()
    return current


def require_api_session(current: Optional[SessionRecord] = Depends(get_current_session)) -> SessionRecord:
    if current is None:
        raise HTTPException(status_code=401, detail="not authenticated")
    return current


def set_session_cookie(response: Response, record: SessionRecord) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=record.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, httponly=True, samesite="lax")
