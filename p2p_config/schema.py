"""
P2P configuration schema.

Frozen dataclasses produced by ``p2p_config.loader`` from YAML.  Every
field has a default so a partial YAML document (or none at all) still
yields a complete ``P2PConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str = "sqlite:///p2p.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class NumberingSettings:
    max_allocation_attempts: int = 5


@dataclass(frozen=True)
class LedgerSettings:
    currency: str = "MXN"
    decimal_places: int = 2


@dataclass(frozen=True)
class PaymentSettings:
    allow_overdraft: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class P2PConfig:
    """Complete runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    payments: PaymentSettings = field(default_factory=PaymentSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str = "<defaults>"
