"""
FastAPI session dependencies.

The session token is read from the session cookie, or from a
``Authorization: Bearer`` header for API clients. ``get_optional_session``
is for pages that redirect; ``require_session`` is for API routes that
answer 401.
"""

from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sessionauth.auth_utils import (
    build_session_view,
    decode_session_token,
    get_user_by_id,
)
from sessionauth.config import Settings
from sessionauth.db.connection import get_db_session
from sessionauth.errors import AuthenticationError
from sessionauth.schemas import SessionView

_bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Return the settings the running app was built with."""
    return request.app.state.settings


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> Optional[str]:
    """Extract the raw session token, preferring the cookie."""
    cookie_token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    if credentials is not None:
        return credentials.credentials
    return None


def get_optional_session(
    token: Optional[str] = Depends(get_session_token),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db_session),
) -> Optional[SessionView]:
    """
    Validate the session token and return a ``SessionView``, or None.

    A token whose user no longer exists counts as no session.
    """
    claims = decode_session_token(token, settings)
    if claims is None:
        return None

    user = get_user_by_id(db, claims.user_id)
    if user is None:
        return None

    return build_session_view(claims, user.email)


def require_session(
    session: Optional[SessionView] = Depends(get_optional_session),
) -> SessionView:
    """
    Return the current ``SessionView``.

    Raises:
        AuthenticationError (401) if there is no valid session.
    """
    if session is None:
        raise AuthenticationError("Not authenticated")
    return session
