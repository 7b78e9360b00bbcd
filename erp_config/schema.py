"""
ErpConfig schema.

Frozen dataclasses the loader fills from YAML plus environment overrides.
The kernel never sees these types directly; erp_config.bridges unpacks
them into plain constructor arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Engine settings.  Pool options apply to PostgreSQL only."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_pre_ping: bool = True
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Behaviour switches for the journal and inventory ledgers."""

    default_currency: str = "USD"
    allow_negative_stock: bool = True


@dataclass(frozen=True)
class ErpConfig:
    """Fully resolved runtime configuration."""

    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    # File the values were read from, for the load trace
    source: str | None = None
