"""
p2p_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` returns the ``P2PConfig`` every entrypoint
    uses to build the engine and services.  Services never read files or
    environment variables themselves; they receive settings as
    constructor arguments.

Resolution order:
    1. The YAML file named by ``P2P_CONFIG``, or the bundled
       ``defaults.yaml``.
    2. ``P2P_DATABASE_URL`` replaces ``database.url``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from p2p_config.loader import load_config, parse_config
from p2p_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    NumberingSettings,
    P2PConfig,
    PaymentSettings,
)

_logger = logging.getLogger("p2p_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "P2P_CONFIG"
DATABASE_URL_ENV_VAR = "P2P_DATABASE_URL"


def bootstrap(config: P2PConfig | None = None):
    """Configure logging, the database engine and the append-only guards; returns the engine."""
    from p2p_kernel.db.engine import init_engine_from_url
    from p2p_kernel.db.immutability import register_immutability_listeners
    from p2p_kernel.logging_config import configure_logging

    config = config or get_active_config()
    configure_logging(level=config.logging.level)
    register_immutability_listeners()
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
    )


def get_active_config(environ: dict[str, str] | None = None) -> P2PConfig:
    """Load the active configuration, applying environment overrides."""
    env = os.environ if environ is None else environ
    path = Path(env[CONFIG_ENV_VAR]) if env.get(CONFIG_ENV_VAR) else DEFAULTS_PATH
    config = load_config(path)

    database_url = env.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "config_loaded",
        extra={
            "source": config.source,
            "database_url_overridden": bool(database_url),
            "allow_overdraft": config.payments.allow_overdraft,
        },
    )
    return config


__all__ = [
    "DatabaseSettings",
    "LedgerSettings",
    "LoggingSettings",
    "NumberingSettings",
    "P2PConfig",
    "PaymentSettings",
    "bootstrap",
    "get_active_config",
    "load_config",
    "parse_config",
]
