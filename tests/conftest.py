"""
Pytest fixtures for the profit sharing test suite.

Provides:
- Structured log capture
- Deterministic clock, in-memory store and audit sink
- Wired services over the in-memory store (default configuration)
- SQLite-backed sessions for the SQLAlchemy adapter and audit chain

Environment Variables:
- DATABASE_URL: optional database URL for the SQL fixtures.  Defaults to an
  in-memory SQLite database, recreated per test.
"""

import json
import logging
import os
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from profit_config import get_active_config
from profit_kernel.adapters.memory import InMemoryAuditSink, InMemoryStore
from profit_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from profit_kernel.domain.clock import DeterministicClock
from profit_kernel.domain.dtos import (
    EntryStatus,
    EntryType,
    LedgerMovement,
    ShareholderAccount,
)
from profit_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from profit_kernel.services.locks import KeyedLock
from profit_services.container import ServiceContainer, build_memory_services

DEFAULT_TEST_DB_URL = "sqlite://"

# Mid-quarter instant inside 2025-Q2.
Q2_2025 = datetime(2025, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture profit_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, services):
            services.profit_sharing.process_quarterly_distribution(...)
            logs = captured_logs()
            assert any(r["message"] == "distribution_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("profit_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2025-07-01 09:00 UTC, just after 2025-Q2 ends."""
    return DeterministicClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def audit_sink(deterministic_clock) -> InMemoryAuditSink:
    return InMemoryAuditSink(deterministic_clock)


@pytest.fixture(scope="session")
def default_config():
    return get_active_config()


@pytest.fixture
def services(store, audit_sink, default_config, deterministic_clock) -> ServiceContainer:
    return build_memory_services(store, audit_sink, default_config, deterministic_clock)


@pytest.fixture
def fresh_locks() -> KeyedLock:
    return KeyedLock()


# =============================================================================
# Data builders
# =============================================================================


@pytest.fixture
def add_account(store) -> Callable[..., ShareholderAccount]:
    """Seed a shareholder account into the in-memory store."""

    def _add(
        account_id: str,
        tier: str = "founder",
        shares: int = 0,
        investment: int = 0,
        asset_value: int = 0,
    ) -> ShareholderAccount:
        return store.add_account(
            ShareholderAccount(
                account_id=account_id,
                business_tier=tier,
                total_shares=shares,
                investment_amount=investment,
                owned_asset_value=asset_value,
            )
        )

    return _add


@pytest.fixture
def record_movement(store) -> Callable[..., LedgerMovement]:
    """Record a ledger movement in the in-memory store."""

    def _record(
        entry_type: EntryType,
        amount: int,
        occurred_at: datetime = Q2_2025,
        account_id: str | None = None,
        status: EntryStatus = EntryStatus.APPROVED,
    ) -> LedgerMovement:
        return store.record_movement(
            LedgerMovement(
                entry_type=entry_type,
                amount=amount,
                status=status,
                occurred_at=occurred_at,
                account_id=account_id,
            )
        )

    return _record


@pytest.fixture
def book_profit(record_movement) -> Callable[[int], None]:
    """
    Book 2025-Q2 income of ``profit`` with no expenses.

    With default rates the pool is 0.392 x profit (0.8 after tax, 0.49
    shared): a profit of 12,500,000 yields a pool of 4,900,000.
    """

    def _book(profit: int) -> None:
        record_movement(EntryType.INCOME, profit)

    return _book


# =============================================================================
# SQL fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_DB_URL)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session on freshly created tables, dropped after the test."""
    init_engine_from_url(get_database_url())
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()
        drop_tables()
        reset_engine()
