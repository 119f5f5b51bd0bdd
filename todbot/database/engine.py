"""
todbot.database.engine — Database Connection, Write Serialization & Async Helper
=================================================================================

The gateway client lives on an ``asyncio`` loop; the store is plain
synchronous SQLAlchemy.  :func:`run_db` is the bridge: cogs hand it a store
function and await the result from a worker thread.

Worker threads mean several store calls can be in flight at once.  The core
operations (serving the next prompt, appending a prompt, resolving a
submission, casting a vote) are all read-then-write, so they run inside
:func:`write_session`, which serializes writers per engine and commits or
rolls back as one unit.  Reads use :func:`get_session` and never take the
lock.

Typical wiring::

    engine = create_db_engine()      # DATABASE_URL, else data/todbot.db
    init_db(engine)
    prompt = await run_db(next_prompt, engine, Category.TRUTH)
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from todbot.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

DEFAULT_DATABASE_URL = "sqlite:///data/todbot.db"

# SQLSTATE for unique_violation (PostgreSQL)
_PG_UNIQUE_VIOLATION = "23505"
_SQLITE_UNIQUE_NAMES = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})
_SQLITE_UNIQUE_PREFIX = "UNIQUE constraint failed:"

# One writer lock per engine
_write_locks: dict[int, threading.RLock] = {}
_write_locks_guard = threading.Lock()


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None, **engine_kwargs) -> Engine:
    """Build a SQLAlchemy :class:`Engine`.

    The URL comes from *url*, then the ``DATABASE_URL`` env var, then
    falls back to a SQLite file at ``data/todbot.db``.  SQLite engines get
    the pragmas and transaction handling from :func:`install_sqlite_support`;
    server databases get a bounded connection pool unless *engine_kwargs*
    names its own ``poolclass``.
    """
    url = url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(url, echo=False, **engine_kwargs)
        install_sqlite_support(engine)
    else:
        if "poolclass" not in engine_kwargs:
            engine_kwargs.setdefault("pool_size", 5)
            engine_kwargs.setdefault("max_overflow", 10)
            engine_kwargs.setdefault("pool_timeout", 10)  # Fail fast instead of hanging
            engine_kwargs.setdefault("pool_recycle", 3600)
        engine = create_engine(url, pool_pre_ping=True, **engine_kwargs)

    logger.info("Database engine created → %s", parsed.render_as_string(hide_password=True))
    return engine


def install_sqlite_support(engine: Engine) -> None:
    """Enable foreign keys + WAL and give SQLAlchemy control of BEGIN.

    pysqlite opens transactions lazily and silently commits around
    SAVEPOINTs; taking over BEGIN makes ``begin_nested()`` and
    transactional DDL behave as they do on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables and apply startup migrations.

    Safe to call on every startup.  The legacy-position check runs first so
    that ``create_all`` never has to reconcile a half-old ``prompts`` table.

    Alembic (``alembic upgrade head``) builds the same schema for
    deployments that prefer managed migrations.
    """
    from todbot.database.migrations import migrate_prompt_positions

    if migrate_prompt_positions(engine):
        logger.info("Migrated prompt positions to be unique per category.")
    Base.metadata.create_all(engine)
    logger.info("Schema ready (%d tables).", len(Base.metadata.tables))


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Session scope: commit when the block exits cleanly, roll back when it
    raises.  Loaded objects stay usable after the block (no expire on commit).
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _write_lock(engine: Engine) -> threading.RLock:
    with _write_locks_guard:
        lock = _write_locks.get(id(engine))
        if lock is None:
            lock = _write_locks[id(engine)] = threading.RLock()
        return lock


@contextmanager
def write_session(engine: Engine) -> Iterator[Session]:
    """Like :func:`get_session`, but serialized against every other writer
    on *engine*.

    Everything read inside the block is still current when the block
    commits, which is what makes ``next_prompt`` and ``cast_vote`` safe
    under concurrent callers.
    """
    with _write_lock(engine):
        with get_session(engine) as session:
            yield session


def is_unique_violation(exc: IntegrityError, column: str | None = None) -> bool:
    """Return True if *exc* is a UNIQUE/PRIMARY KEY conflict.

    Other integrity failures (NOT NULL, CHECK, foreign keys) return False
    so callers only retry on the one condition a fresh identifier can fix.
    With *column* (``"table.column"``) the conflict must also be on that
    single column; a clash on a composite key or another column is False.
    """
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode is not None:
        if pgcode != _PG_UNIQUE_VIOLATION:
            return False
        if column is None:
            return True
        constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
        return constraint == "{}_{}_key".format(*column.split(".", 1))

    error_name = getattr(orig, "sqlite_errorname", None)
    message = str(orig)
    if error_name is not None:
        if error_name not in _SQLITE_UNIQUE_NAMES:
            return False
    elif _SQLITE_UNIQUE_PREFIX not in message:
        return False
    if column is None:
        return True
    # "UNIQUE constraint failed: prompts.category, prompts.position"
    _, _, columns = message.partition(_SQLITE_UNIQUE_PREFIX)
    return [c.strip() for c in columns.split(",")] == [column]


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await ``func(*args, **kwargs)`` on the default thread pool.

    Cogs, views and the maintenance loop call every store function this way,
    e.g. ``await run_db(cast_vote, bot.engine, prompt_id, user_id, 1)``.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
