"""
Config -> Kernel Bridges.

Functions that hand ErpConfig values to the kernel.  These live in
erp_config (the producer) because the kernel must NEVER import erp_config.

Usage:
    from erp_config import get_active_config
    from erp_config.bridges import bootstrap_kernel, build_services

    config = get_active_config()
    bootstrap_kernel(config, create_schema=True)
    with session_scope() as session:
        services = build_services(session, config)
        services.journal.post_entry(entry_id, actor_id=user_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from erp_config.schema import ErpConfig
from erp_kernel.db.engine import create_tables, init_engine_from_url
from erp_kernel.db.immutability import register_immutability_listeners
from erp_kernel.domain.clock import Clock
from erp_kernel.logging_config import configure_logging
from erp_kernel.services import (
    AccountService,
    InventoryLedgerService,
    ItemService,
    JournalService,
    WarehouseService,
)


@dataclass(frozen=True)
class KernelServices:
    """The write-side services bound to one session."""

    accounts: AccountService
    items: ItemService
    warehouses: WarehouseService
    journal: JournalService
    inventory: InventoryLedgerService


def bootstrap_kernel(config: ErpConfig, create_schema: bool = False) -> Engine:
    """
    Configure logging, initialize the engine and install the ORM guards.

    Logging is configured first so the engine's own startup line uses the
    configured level.
    """
    configure_logging(level=config.logging.level)
    db = config.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=db.pool_pre_ping,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    register_immutability_listeners()
    if create_schema:
        create_tables(engine)
    return engine


def build_services(
    session: Session,
    config: ErpConfig,
    clock: Clock | None = None,
) -> KernelServices:
    """Construct every service with the ledger settings from ``config``."""
    ledger = config.ledger
    return KernelServices(
        accounts=AccountService(session, clock),
        items=ItemService(session, clock),
        warehouses=WarehouseService(session, clock),
        journal=JournalService(session, clock, default_currency=ledger.default_currency),
        inventory=InventoryLedgerService(
            session, clock, allow_negative_stock=ledger.allow_negative_stock
        ),
    )
