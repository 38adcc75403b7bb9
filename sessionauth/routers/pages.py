"""
Server-rendered pages and their session gates.

Page bodies are bare placeholders; what matters here is who gets redirected
where. Protected pages send anonymous visitors to the sign-in page, and the
sign-in/sign-up pages send signed-in visitors home.
"""

from __future__ import annotations

import html
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from sessionauth.auth import get_optional_session
from sessionauth.schemas import SessionView

SIGNIN_PATH = "/auth/signin"
SIGNUP_PATH = "/auth/signup"
HOME_PATH = "/"

router = APIRouter(tags=["pages"], include_in_schema=False)


def safe_callback_url(url: Optional[str]) -> str:
    """Only allow site-relative redirect targets."""
    if not url or not url.startswith("/") or url.startswith("//") or "\\" in url:
        return HOME_PATH
    return url


def _signin_redirect(request: Request) -> RedirectResponse:
    target = request.url.path
    if request.url.query:
        target += "?" + request.url.query
    query = urlencode({"callbackUrl": target})
    return RedirectResponse(url=f"{SIGNIN_PATH}?{query}", status_code=303)


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(
        "<!doctype html>\n"
        f"<html><head><title>{html.escape(title)}</title></head>"
        f"<body><main>{body}</main></body></html>"
    )


@router.get("/", response_class=HTMLResponse)
def home(session: Optional[SessionView] = Depends(get_optional_session)):
    if session is None:
        return _page(
            "Home",
            f'<h1>Welcome</h1><p><a href="{SIGNIN_PATH}">Sign in</a> or '
            f'<a href="{SIGNUP_PATH}">create an account</a>.</p>',
        )
    return _page(
        "Home",
        f"<h1>Welcome back, {html.escape(session.user.username)}</h1>"
        '<p><a href="/dashboard">Go to dashboard</a></p>',
    )


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    session: Optional[SessionView] = Depends(get_optional_session),
):
    if session is None:
        return _signin_redirect(request)
    return _page(
        "Dashboard",
        f"<h1>Dashboard</h1><h2>Welcome, {html.escape(session.user.username)}!</h2>"
        f"<p>You are signed in as: {html.escape(session.user.email)}</p>",
    )


@router.get(SIGNIN_PATH, response_class=HTMLResponse)
def signin_page(
    callbackUrl: Optional[str] = None,
    error: Optional[str] = None,
    session: Optional[SessionView] = Depends(get_optional_session),
):
    if session is not None:
        return RedirectResponse(url=HOME_PATH, status_code=303)
    callback = html.escape(safe_callback_url(callbackUrl), quote=True)
    notice = '<p role="alert">Invalid username or password</p>' if error else ""
    return _page(
        "Sign in",
        f"<h1>Sign in</h1>{notice}"
        '<form method="post" action="/api/auth/signin">'
        f'<input type="hidden" name="callbackUrl" value="{callback}">'
        '<input name="username" autocomplete="username">'
        '<input name="password" type="password" autocomplete="current-password">'
        '<button type="submit">Sign in</button></form>'
        f'<p><a href="{SIGNUP_PATH}">Create an account</a></p>',
    )


@router.get(SIGNUP_PATH, response_class=HTMLResponse)
@router.get("/register", response_class=HTMLResponse)
def signup_page(session: Optional[SessionView] = Depends(get_optional_session)):
    if session is not None:
        return RedirectResponse(url=HOME_PATH, status_code=303)
    return _page(
        "Sign up",
        "<h1>Create an account</h1>"
        "<p>POST JSON {username, email, password} to /api/auth/signup.</p>"
        f'<p><a href="{SIGNIN_PATH}">Already registered? Sign in</a></p>',
    )
