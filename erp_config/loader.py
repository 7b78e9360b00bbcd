"""
Configuration Loader (``erp_config.loader``).

Responsibility
--------------
Reads a YAML file, applies environment overrides, and parses the result
into the frozen dataclasses of ``erp_config.schema``.  Runtime callers go
through ``erp_config.get_active_config()``; this module is its plumbing.

Environment overrides
---------------------
* ``DATABASE_URL`` -- full SQLAlchemy URL; wins over everything else.
* ``DB_HOST``, ``DB_PORT``, ``DB_USER``, ``DB_PASSWORD``, ``DB_NAME``,
  ``DB_SSLMODE`` -- composed into a PostgreSQL URL when ``DB_HOST`` is
  set and ``DATABASE_URL`` is not.
* ``ERP_LOG_LEVEL`` -- logging level name.
* ``ERP_DEFAULT_CURRENCY`` -- ISO 4217 code for lines without a currency.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values (unknown level, bad currency, non-integer port, missing
  database URL)  -> ``ValueError`` with a descriptive message.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.engine import URL

from erp_config.schema import DatabaseSettings, ErpConfig, LedgerSettings, LoggingSettings
from erp_kernel.db.types import is_valid_currency

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compose_database_url(env: Mapping[str, str]) -> str | None:
    """
    Build a PostgreSQL URL from the ``DB_*`` variables.

    Returns None when ``DB_HOST`` is not set.
    """
    host = env.get("DB_HOST")
    if not host:
        return None
    port = env.get("DB_PORT")
    try:
        port_number = int(port) if port else None
    except ValueError as exc:
        raise ValueError(f"DB_PORT must be an integer, got {port!r}") from exc

    query = {"sslmode": env["DB_SSLMODE"]} if env.get("DB_SSLMODE") else {}
    url = URL.create(
        "postgresql+psycopg2",
        username=env.get("DB_USER") or None,
        password=env.get("DB_PASSWORD") or None,
        host=host,
        port=port_number,
        database=env.get("DB_NAME") or None,
        query=query,
    )
    return url.render_as_string(hide_password=False)


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    result = copy.deepcopy(data)
    database = result.setdefault("database", {}) or {}
    result["database"] = database

    if env.get("DATABASE_URL"):
        database["url"] = env["DATABASE_URL"]
    else:
        composed = compose_database_url(env)
        if composed:
            database["url"] = composed

    if env.get("ERP_LOG_LEVEL"):
        result.setdefault("logging", {})
        result["logging"] = dict(result["logging"] or {}, level=env["ERP_LOG_LEVEL"])

    if env.get("ERP_DEFAULT_CURRENCY"):
        result.setdefault("ledger", {})
        result["ledger"] = dict(result["ledger"] or {}, default_currency=env["ERP_DEFAULT_CURRENCY"])

    return result


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _parse_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer, got {value!r}") from exc


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    url = data.get("url")
    if not url:
        raise ValueError("database.url is required (or set DATABASE_URL / DB_HOST)")
    defaults = DatabaseSettings(url=url)
    return DatabaseSettings(
        url=str(url),
        echo=_parse_bool(data.get("echo", defaults.echo), "database.echo"),
        pool_size=_parse_int(data.get("pool_size", defaults.pool_size), "database.pool_size"),
        max_overflow=_parse_int(
            data.get("max_overflow", defaults.max_overflow), "database.max_overflow"
        ),
        pool_pre_ping=_parse_bool(
            data.get("pool_pre_ping", defaults.pool_pre_ping), "database.pool_pre_ping"
        ),
        pool_timeout=_parse_int(
            data.get("pool_timeout", defaults.pool_timeout), "database.pool_timeout"
        ),
        pool_recycle=_parse_int(
            data.get("pool_recycle", defaults.pool_recycle), "database.pool_recycle"
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings.level)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level: unknown level {level!r}")
    return LoggingSettings(level=level)


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    currency = str(data.get("default_currency", LedgerSettings.default_currency)).upper()
    if not is_valid_currency(currency):
        raise ValueError(f"ledger.default_currency: {currency!r} is not an ISO 4217 code")
    return LedgerSettings(
        default_currency=currency,
        allow_negative_stock=_parse_bool(
            data.get("allow_negative_stock", LedgerSettings.allow_negative_stock),
            "ledger.allow_negative_stock",
        ),
    )


def parse_config(data: dict[str, Any], source: str | None = None) -> ErpConfig:
    """Parse a merged configuration dict into an ErpConfig."""
    return ErpConfig(
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        ledger=parse_ledger(data.get("ledger") or {}),
        source=source,
    )
