"""
erp_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables.

Architecture position:
    Configuration sits above ``erp_kernel``.  The kernel MUST NEVER import
    from ``erp_config``; ``erp_config.bridges`` hands resolved settings to
    the kernel as plain arguments.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``erp_config_loaded`` log entry naming the source file, database
    dialect, log level and ledger settings.  The database password is never
    logged.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from sqlalchemy.engine import make_url

from erp_config.loader import apply_env_overrides, load_yaml_file, parse_config
from erp_config.schema import DatabaseSettings, ErpConfig, LedgerSettings, LoggingSettings
from erp_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "ErpConfig",
    "LedgerSettings",
    "LoggingSettings",
    "get_active_config",
]


def get_active_config(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> ErpConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to read.  Defaults to the packaged
            ``defaults.yaml``.
        env: Environment mapping for overrides.  Defaults to ``os.environ``;
            tests pass a plain dict.

    Returns:
        A frozen ErpConfig.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If any value fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    environment = os.environ if env is None else env

    data = apply_env_overrides(load_yaml_file(path), environment)
    config = parse_config(data, source=str(path))

    _logger.info(
        "erp_config_loaded",
        extra={
            "source": config.source,
            "dialect": make_url(config.database.url).get_backend_name(),
            "log_level": config.logging.level,
            "default_currency": config.ledger.default_currency,
            "allow_negative_stock": config.ledger.allow_negative_stock,
        },
    )
    return config
