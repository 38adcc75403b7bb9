"""
Authentication endpoints: sign-up, sign-in, sign-out, current session.

Sign-up never signs the user in; the client calls sign-in afterwards.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from sessionauth.auth import get_app_settings, get_optional_session, require_session
from sessionauth.auth_utils import authenticate_user, issue_session_token, register_user
from sessionauth.config import Settings
from sessionauth.db.connection import get_db_session
from sessionauth.errors import AuthenticationError
from sessionauth.routers.pages import SIGNIN_PATH, safe_callback_url
from sessionauth.schemas import (
    MessageResponse,
    SessionView,
    SigninRequest,
    SigninResponse,
    SignupRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


# ── Helpers ──────────────────────────────────────────────────────────────────

async def read_signin_body(request: Request) -> SigninRequest:
    """Accept sign-in credentials as JSON or as a submitted HTML form."""
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
        else:
            data = dict(await request.form())
    except ValueError:
        return SigninRequest()

    if not isinstance(data, dict):
        return SigninRequest()
    try:
        return SigninRequest.model_validate(data)
    except PydanticValidationError:
        return SigninRequest()


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age_secs,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.post("/signup", response_model=MessageResponse, status_code=201)
def signup(
    body: SignupRequest,
    db: Session = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    """Create a new user account. Does not start a session."""
    register_user(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
        rounds=settings.BCRYPT_ROUNDS,
    )
    return MessageResponse(message="User created successfully")


@router.post("/signin", response_model=SigninResponse)
def signin(
    request: Request,
    body: SigninRequest = Depends(read_signin_body),
    db: Session = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Verify username/password and set the session cookie on success.

    JSON callers get a JSON verdict. HTML form posts are redirected: to the
    callback URL on success, back to the sign-in page on failure.
    """
    from_form = not request.headers.get("content-type", "").startswith("application/json")
    callback_url = safe_callback_url(body.callbackUrl)

    user = authenticate_user(
        db, body.username, body.password, rounds=settings.BCRYPT_ROUNDS
    )
    if user is None:
        logger.info("Sign-in failed for username=%r", body.username)
        error = AuthenticationError()
        if from_form:
            query = urlencode({"error": "CredentialsSignin", "callbackUrl": callback_url})
            return RedirectResponse(url=f"{SIGNIN_PATH}?{query}", status_code=303)
        return JSONResponse(
            status_code=error.status,
            content=SigninResponse(ok=False, error=error.message).model_dump(),
        )

    token = issue_session_token(user, settings)
    if from_form:
        response: Response = RedirectResponse(url=callback_url, status_code=303)
    else:
        response = JSONResponse(
            content=SigninResponse(ok=True, url=callback_url).model_dump()
        )
    set_session_cookie(response, token, settings)
    logger.info("Signed in user id=%s username=%r", user.id, user.username)
    return response


@router.post("/signout", response_model=SigninResponse)
def signout(
    session: Optional[SessionView] = Depends(get_optional_session),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Clear the session cookie. Safe to call without a session."""
    response = JSONResponse(content=SigninResponse(ok=True, url="/").model_dump())
    clear_session_cookie(response, settings)
    if session is not None:
        logger.info("Signed out username=%r", session.user.username)
    return response


@router.get("/session")
def get_session(
    session: Optional[SessionView] = Depends(get_optional_session),
) -> dict:
    """Return the current session, or an empty object when signed out."""
    if session is None:
        return {}
    return session.model_dump(mode="json")


@router.get("/me", response_model=SessionView)
def get_me(session: SessionView = Depends(require_session)) -> SessionView:
    """Return the current session; 401 without one."""
    return session
