"""Credential store: ORM models and the shared connection handle."""

from .connection import Database, get_database, get_db_session  # noqa: F401
from .models import Base, User  # noqa: F401
