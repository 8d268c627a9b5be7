"""Test fixtures and configuration."""

import logging
import os
import sys
from uuid import uuid4

# Settings are read at import time; keep the module-level engine off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["ENVIRONMENT"] = "testing"

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from finrecon import database
from finrecon.database import Base
from finrecon.services import scoring
from finrecon.services.reconciliation_store import ReconciliationStore
from tests.factories import create_test_token


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def reset_scoring_config_cache(monkeypatch):
    """Each test loads scoring config from its own environment."""
    monkeypatch.delenv("RECONCILIATION_MATCH_THRESHOLD", raising=False)
    monkeypatch.delenv("RECONCILIATION_CONFIG_PATH", raising=False)
    monkeypatch.setattr(scoring, "_config_cache", None)
    yield


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite database per test.

    A file rather than ``:memory:`` so the store's own sessions and the test
    session see the same data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'finrecon_test.db'}",
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine):
    """Session maker bound to the test database, also used by API handlers."""
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(maker)
    yield maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture
async def db(session_maker):
    """Session for seeding and inspecting rows.

    Seeded rows must be committed before the store runs; the store works in
    its own sessions.
    """
    async with session_maker() as session:
        yield session


@pytest.fixture
def store(session_maker) -> ReconciliationStore:
    return ReconciliationStore(session_maker)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def auth_headers(user_id) -> dict[str, str]:
    token = create_test_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client against the app, backed by the test database."""
    from finrecon.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client
