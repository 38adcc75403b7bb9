"""Tests for the lazily-connected database handle."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from sessionauth.db import connection
from sessionauth.db.connection import Database
from sessionauth.db.models import User


class TestLazyConnect:
    def test_no_engine_until_first_use(self):
        database = Database("sqlite://")
        assert database.is_connected is False
        database.connect()
        assert database.is_connected is True
        database.dispose()

    def test_reuses_engine(self, monkeypatch):
        calls = []
        real_create_engine = connection.create_engine

        def counting_create_engine(*args, **kwargs):
            calls.append(args)
            return real_create_engine(*args, **kwargs)

        monkeypatch.setattr(connection, "create_engine", counting_create_engine)
        database = Database("sqlite://")
        first = database.connect()
        second = database.connect()
        with database.session():
            pass
        assert first is second
        assert database.engine is first
        assert len(calls) == 1
        database.dispose()

    def test_concurrent_first_use_creates_one_engine(self, monkeypatch):
        calls = []
        real_create_engine = connection.create_engine

        def slow_create_engine(*args, **kwargs):
            calls.append(args)
            time.sleep(0.05)
            return real_create_engine(*args, **kwargs)

        monkeypatch.setattr(connection, "create_engine", slow_create_engine)
        database = Database("sqlite://")
        workers = 8
        barrier = threading.Barrier(workers)

        def first_use(_):
            barrier.wait()
            return database.connect()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            engines = list(pool.map(first_use, range(workers)))

        assert len(calls) == 1
        assert all(engine is engines[0] for engine in engines)
        database.dispose()

    def test_dispose_allows_reconnect(self):
        database = Database("sqlite://")
        first = database.connect()
        database.dispose()
        assert database.is_connected is False
        assert database.connect() is not first
        database.dispose()


class TestEngineOptions:
    def test_memory_sqlite_uses_static_pool(self):
        options = connection._engine_options("sqlite://")
        assert options["poolclass"] is StaticPool
        assert options["connect_args"] == {"check_same_thread": False}

    def test_file_sqlite_keeps_default_pool(self, tmp_path):
        options = connection._engine_options(f"sqlite:///{tmp_path}/users.db")
        assert "poolclass" not in options

    def test_server_database_gets_pool_settings(self):
        options = connection._engine_options("postgresql+psycopg2://u:p@localhost/db")
        assert options["pool_size"] == 5
        assert options["pool_pre_ping"] is True


class TestSessions:
    def test_create_all_and_ping(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path}/users.db")
        database.create_all()
        assert "users" in inspect(database.engine).get_table_names()
        assert database.ping() is True
        database.dispose()

    def test_ping_fails_for_unreachable_database(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path}/missing-dir/users.db")
        assert database.ping() is False
        database.dispose()

    def test_session_commits_on_clean_exit(self, database):
        with database.session() as db:
            db.add(User(username="dave", email="dave@x.com", password_hash="h"))
        with database.session() as db:
            assert db.query(User).filter(User.username == "dave").count() == 1

    def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            with database.session() as db:
                db.add(User(username="erin", email="erin@x.com", password_hash="h"))
                db.flush()
                raise RuntimeError("boom")
        with database.session() as db:
            assert db.query(User).filter(User.username == "erin").count() == 0
