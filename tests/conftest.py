"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from todbot.database.engine import install_sqlite_support
from todbot.database.models import Base
from todbot.services.rating_service import clear_counts_cache


def run_async(coro):
    """Run an async coroutine in a new event loop (no pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_memory_engine() -> Engine:
    """In-memory SQLite engine shared across threads, without tables.

    StaticPool keeps one connection so every thread (``run_db`` uses
    ``asyncio.to_thread``) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_support(engine)
    return engine


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all todbot tables."""
    engine = make_memory_engine()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture(autouse=True)
def _fresh_counts_cache():
    """Rating counts are cached module-wide; never leak them between tests."""
    clear_counts_cache()
    yield
    clear_counts_cache()
