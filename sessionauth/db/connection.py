"""
sessionauth Database Connection Handle

``Database`` owns the process-wide SQLAlchemy engine. The engine is created
lazily on first use; concurrent first callers wait on a lock and share the
one engine that gets built. The handle is attached to ``app.state`` by
``create_app()`` and reached from routes through ``get_db_session()``.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sessionauth.db.models import Base

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Pick pool/connect arguments appropriate for the database backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: dict = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout gets a fresh
            # empty in-memory database.
            options["poolclass"] = StaticPool
        return options
    return dict(
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
    )


class Database:
    """Lazily-connected, explicitly owned database handle."""

    def __init__(self, database_url: str, **engine_options) -> None:
        self.database_url = database_url
        self._engine_options = engine_options or _engine_options(database_url)
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker[Session]] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> Engine:
        """
        Return the shared engine, creating it on the first call.

        Safe to call from many threads at once: exactly one caller runs
        ``create_engine``; the rest block until it finishes and reuse it.
        """
        engine = self._engine
        if engine is not None:
            return engine

        with self._lock:
            if self._engine is None:
                logger.info(
                    "Connecting to database %s",
                    make_url(self.database_url).render_as_string(hide_password=True),
                )
                engine = create_engine(self.database_url, **self._engine_options)
                self._session_factory = sessionmaker(
                    bind=engine, expire_on_commit=False
                )
                self._engine = engine
            return self._engine

    @property
    def engine(self) -> Engine:
        return self.connect()

    def session_factory(self) -> sessionmaker[Session]:
        """Return the ``sessionmaker`` bound to the shared engine."""
        self.connect()
        return self._session_factory

    def new_session(self) -> Session:
        return self.session_factory()()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager that yields a SQLAlchemy ``Session``.

        Automatically commits on clean exit or rolls back on exception.

        Usage::

            with database.session() as db:
                db.add(some_model)
        """
        session = self.new_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create every table defined on ``Base``. No-op for existing tables."""
        Base.metadata.create_all(bind=self.connect())

    def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.connect().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def dispose(self) -> None:
        """Release pooled connections. The next ``connect()`` starts afresh."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the app-owned ``Database``."""
    return request.app.state.database


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a SQLAlchemy ``Session``.

    Writes are committed explicitly by the service functions; anything left
    uncommitted when the request ends is rolled back.

    Usage in a route::

        @router.get("/foo")
        def foo(db: Session = Depends(get_db_session)):
            ...
    """
    session = get_database(request).new_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
