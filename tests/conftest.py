"""
Pytest fixtures for the ERP ledger kernel test suite.

Provides:
- A database engine and per-test rolled-back sessions
- Service and selector fixtures wired to a deterministic clock
- Factory fixtures for accounts, items and warehouses
- Captured structured logs

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  Defaults to an
  in-memory SQLite database.  Point it at PostgreSQL to run the suite
  (including the threaded concurrency tests) against a real server.
"""

import json
import logging
import os
from datetime import date
from io import StringIO
from itertools import count
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session, sessionmaker

from erp_kernel.db.base import Base
from erp_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from erp_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from erp_kernel.domain.clock import DeterministicClock
from erp_kernel.domain.dtos import LineSpec
from erp_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from erp_kernel.models.account import Account, AccountType
from erp_kernel.models.inventory import Item, ItemType, Warehouse
from erp_kernel.selectors import (
    InventorySelector,
    JournalSelector,
    LedgerSelector,
    StockLevelSelector,
)
from erp_kernel.services import (
    AccountService,
    InventoryLedgerService,
    ItemService,
    JournalService,
    WarehouseService,
)

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_TEST_URL = "sqlite://"


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_URL)


def is_postgres_url() -> bool:
    return get_database_url().startswith("postgresql")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


def pytest_collection_modifyitems(config, items):
    if is_postgres_url():
        return
    skip_pg = pytest.mark.skip(reason="needs DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


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
    Capture erp_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.post_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("erp_kernel")
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
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(
        get_database_url(),
        echo=False,
        pool_size=30,
        max_overflow=20,
        pool_timeout=10,
    )
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    drop_tables(db_engine)
    create_tables(db_engine)
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables(db_engine)


def _delete_all_rows(engine):
    """Remove every row, children first.  Bypasses the ORM guards."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; any
    ``session.commit()`` inside the test releases a savepoint, and the outer
    transaction is rolled back at teardown.
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
# Committing sessions for concurrency tests
# =============================================================================


@pytest.fixture(scope="function")
def committing_session_factory(tmp_path, db_tables, db_engine):
    """
    Session factory whose sessions really commit.

    Against PostgreSQL this reuses the suite engine and deletes all rows at
    teardown.  Against SQLite it uses a fresh file database so that
    separate sessions get separate connections.
    """
    if is_postgres_url():
        engine = db_engine
    else:
        engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
        create_tables(engine)

    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory

    if is_postgres_url():
        _delete_all_rows(engine)
    else:
        engine.dispose()


# =============================================================================
# Actor, clock, services, selectors
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def account_service(session: Session, deterministic_clock) -> AccountService:
    return AccountService(session, deterministic_clock)


@pytest.fixture
def item_service(session: Session, deterministic_clock) -> ItemService:
    return ItemService(session, deterministic_clock)


@pytest.fixture
def warehouse_service(session: Session, deterministic_clock) -> WarehouseService:
    return WarehouseService(session, deterministic_clock)


@pytest.fixture
def journal_service(session: Session, deterministic_clock) -> JournalService:
    return JournalService(session, deterministic_clock, default_currency="USD")


@pytest.fixture
def inventory_service(session: Session, deterministic_clock) -> InventoryLedgerService:
    return InventoryLedgerService(session, deterministic_clock)


@pytest.fixture
def journal_selector(session: Session) -> JournalSelector:
    return JournalSelector(session)


@pytest.fixture
def inventory_selector(session: Session) -> InventorySelector:
    return InventorySelector(session)


@pytest.fixture
def stock_selector(session: Session) -> StockLevelSelector:
    return StockLevelSelector(session)


@pytest.fixture
def ledger_selector(session: Session) -> LedgerSelector:
    return LedgerSelector(session)


# =============================================================================
# Factory fixtures
# =============================================================================

_codes = count(1)


@pytest.fixture
def create_account(session: Session, test_actor_id: UUID):
    """Factory fixture to create test accounts."""

    def _create_account(
        code: str | None = None,
        name: str | None = None,
        account_type: AccountType = AccountType.ASSET,
        parent_id: UUID | None = None,
        is_active: bool = True,
    ) -> Account:
        code = code or f"T{next(_codes):05d}"
        account = Account(
            code=code,
            name=name or f"Account {code}",
            account_type=account_type,
            parent_id=parent_id,
            is_active=is_active,
            created_by_id=test_actor_id,
        )
        session.add(account)
        session.flush()
        return account

    return _create_account


@pytest.fixture
def create_item(session: Session, test_actor_id: UUID):
    """Factory fixture to create test items."""

    def _create_item(
        sku: str | None = None,
        name: str | None = None,
        item_type: ItemType = ItemType.RAW_MATERIAL,
        unit_of_measure: str = "pcs",
        is_active: bool = True,
    ) -> Item:
        sku = sku or f"SKU-{next(_codes):05d}"
        item = Item(
            sku=sku,
            name=name or f"Item {sku}",
            item_type=item_type,
            unit_of_measure=unit_of_measure,
            is_active=is_active,
            created_by_id=test_actor_id,
        )
        session.add(item)
        session.flush()
        return item

    return _create_item


@pytest.fixture
def create_warehouse(session: Session, test_actor_id: UUID):
    """Factory fixture to create test warehouses."""

    def _create_warehouse(
        code: str | None = None,
        name: str | None = None,
        is_active: bool = True,
    ) -> Warehouse:
        code = code or f"WH{next(_codes):05d}"
        warehouse = Warehouse(
            code=code,
            name=name or f"Warehouse {code}",
            is_active=is_active,
            created_by_id=test_actor_id,
        )
        session.add(warehouse)
        session.flush()
        return warehouse

    return _create_warehouse


@pytest.fixture
def standard_accounts(create_account) -> dict[str, Account]:
    """A small chart of accounts covering every account type."""
    return {
        "cash": create_account("1000", "Cash", AccountType.ASSET),
        "receivable": create_account("1100", "Accounts Receivable", AccountType.ASSET),
        "payable": create_account("2000", "Accounts Payable", AccountType.LIABILITY),
        "equity": create_account("3000", "Owner Equity", AccountType.EQUITY),
        "revenue": create_account("4000", "Sales Revenue", AccountType.REVENUE),
        "expense": create_account("5000", "Office Expense", AccountType.EXPENSE),
    }


@pytest.fixture
def item(create_item) -> Item:
    return create_item("WIDGET-1", "Widget")


@pytest.fixture
def warehouse(create_warehouse) -> Warehouse:
    return create_warehouse("MAIN", "Main Warehouse")


@pytest.fixture
def make_draft(journal_service: JournalService, standard_accounts, test_actor_id: UUID):
    """
    Factory fixture for DRAFT entries.

    Defaults to a balanced cash sale of 100.00 USD.
    """

    def _make_draft(
        lines: list[LineSpec] | None = None,
        entry_date: date = date(2024, 1, 15),
        description: str | None = "Test entry",
        reference: str | None = None,
    ):
        if lines is None:
            lines = [
                LineSpec.debit(standard_accounts["cash"].id, "100.00"),
                LineSpec.credit(standard_accounts["revenue"].id, "100.00"),
            ]
        return journal_service.create_draft_entry(
            entry_date=entry_date,
            description=description,
            reference=reference,
            lines=lines,
            actor_id=test_actor_id,
        )

    return _make_draft
