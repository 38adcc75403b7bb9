"""
Pydantic models for request / response validation.

Request fields are optional at the schema level so that an absent field
reaches the handler and is reported as "Missing fields" (400) rather than
as a schema error.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---- Registration ----

class SignupRequest(BaseModel):
    username: Optional[str] = Field(default=None, max_length=64)
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ---- Sign-in ----

class SigninRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    callbackUrl: Optional[str] = None


class SigninResponse(BaseModel):
    ok: bool
    url: Optional[str] = None
    error: Optional[str] = None


# ---- Session ----

class SessionUser(BaseModel):
    id: str
    username: str
    email: str


class SessionView(BaseModel):
    user: SessionUser
    expires: datetime


# ---- Health ----

class HealthResponse(BaseModel):
    status: str
    database: bool
