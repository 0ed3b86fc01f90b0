"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A session-scoped engine and schema, with per-test rollback isolation
- A tracked session factory for concurrency tests (real commits)
- Deterministic clock, policy, seeded chart and orchestrator fixtures
- Structured log capture

Environment Variables:
- LEKKA_TEST_DATABASE_URL: database URL for the suite.  When unset, a
  file-backed SQLite database in the pytest temp directory is used, so the
  suite runs with no external services.  Point it at PostgreSQL to run the
  same tests against the production backend.
"""

import json
import logging
import os
import threading
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from lekka_kernel.db.base import Base
from lekka_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from lekka_kernel.domain.clock import DeterministicClock
from lekka_kernel.domain.dtos import DocumentModel, DocumentType, JournalLine, PreviewRequest
from lekka_kernel.domain.policy import LedgerPolicy
from lekka_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from lekka_kernel.services.chart_service import ChartService
from lekka_kernel.services.posting_orchestrator import PostingOrchestrator

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture lekka_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.preview(...)
            logs = captured_logs()
            assert any(r["message"] == "preview_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("lekka_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def database_url(tmp_path_factory) -> str:
    url = os.environ.get("LEKKA_TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{tmp_path_factory.mktemp('db') / 'lekka_test.db'}"


@pytest.fixture(scope="session")
def db_engine(database_url):
    """Single engine for the entire test session."""
    eng = init_engine_from_url(
        database_url, echo=False,
        pool_size=20, max_overflow=10, pool_timeout=30,
    )
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


def _delete_all_rows(engine) -> None:
    """Remove all data; used after tests that perform real commits."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(text(f"DELETE FROM {table.name}"))


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Uses the SQLAlchemy 2.0 ``join_transaction_mode`` pattern:
    - Opens a dedicated connection with an outer transaction
    - Creates a session that *joins* the outer transaction
    - Any ``session.commit()`` or ``session.rollback()`` inside the test
      (including the orchestrator's own) acts on a savepoint
    - At teardown the outer transaction is rolled back, undoing ALL data
      changes made during the test
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Concurrency testing fixtures (real commits + DELETE cleanup)
# =============================================================================


@pytest.fixture(scope="function")
def session_factory(db_engine, db_tables):
    """Provide a tracked session factory for creating sessions in concurrent threads.

    Each thread should create its own session using this factory.
    The factory tracks all created sessions and on teardown:
    1. Blocks new session creation (late threads get RuntimeError)
    2. Force-closes all tracked sessions (returns connections to pool)
    3. Deletes all committed data
    """
    factory = get_session_factory()
    created_sessions = []
    lock = threading.Lock()
    closed = False

    def tracked_factory():
        nonlocal closed
        with lock:
            if closed:
                raise RuntimeError("session_factory closed (fixture teardown)")
            s = factory()
            created_sessions.append(s)
            return s

    yield tracked_factory

    with lock:
        closed = True

    for s in created_sessions:
        if s.is_active:
            s.rollback()
        s.close()

    _delete_all_rows(db_engine)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed at 2025-04-01 09:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def policy() -> LedgerPolicy:
    return LedgerPolicy()


@pytest.fixture
def seeded_chart(session: Session) -> ChartService:
    """Seed the GLOBAL base chart and return the chart service.

    The seed is committed (a savepoint release) so that an orchestrator
    rollback inside the test cannot undo it.
    """
    chart = ChartService(session)
    chart.seed_base_chart()
    session.commit()
    return chart


@pytest.fixture
def orchestrator(session, seeded_chart, policy, deterministic_clock) -> PostingOrchestrator:
    return PostingOrchestrator(session, policy=policy, clock=deterministic_clock)


@pytest.fixture
def make_request():
    """Build a PreviewRequest from ``(account, debit, credit)`` triples."""

    def _make(
        rows,
        doc_type=DocumentType.JOURNAL,
        tenant_id=TENANT,
        date="2025-04-01",
        document=None,
        idempotency_key="key-1",
        session_id=None,
    ) -> PreviewRequest:
        lines = tuple(
            JournalLine(account=account, date=date, debit=debit, credit=credit)
            for account, debit, credit in rows
        )
        return PreviewRequest(
            tenant_id=tenant_id,
            doc_type=doc_type,
            lines=lines,
            document=document or DocumentModel(),
            idempotency_key=idempotency_key,
            session_id=session_id,
        )

    return _make


@pytest.fixture
def fund_bank(orchestrator, make_request):
    """Post an opening journal crediting capital into ``account``."""

    def _fund(amount: int, account: str = "Bank", tenant_id: str = TENANT, date: str = "2025-04-01"):
        request = make_request(
            [(account, amount, 0), ("Capital Account", 0, amount)],
            tenant_id=tenant_id,
            date=date,
            idempotency_key=f"opening-{account}-{amount}",
        )
        preview = orchestrator.preview(request)
        assert preview.is_preview, preview.errors
        return orchestrator.confirm(preview.preview_id, preview.hash, tenant_id)

    return _fund
