"""
Configuration Loader (``p2p_config.loader``).

Responsibility
--------------
Loads a YAML document and parses it into the frozen ``p2p_config.schema``
dataclasses.

Invariants enforced
-------------------
* Unknown top-level sections or keys raise ``ValueError``; a typo never
  falls back silently to a default.
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types or out-of-range values -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from p2p_config.schema import (
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    NumberingSettings,
    P2PConfig,
    PaymentSettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "numbering": NumberingSettings,
    "ledger": LedgerSettings,
    "payments": PaymentSettings,
    "logging": LoggingSettings,
}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _parse_section(name: str, cls: type, data: Any):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"section '{name}' must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"section '{name}': unknown keys {sorted(unknown)}")
    values = {}
    for key, value in data.items():
        expected = type(getattr(cls(), key))
        if expected is int and isinstance(value, bool):
            raise ValueError(f"{name}.{key} must be an integer")
        if not isinstance(value, expected):
            raise ValueError(
                f"{name}.{key} must be {expected.__name__}, got {type(value).__name__}"
            )
        values[key] = value
    return cls(**values)


def parse_config(data: dict[str, Any], source: str = "<dict>") -> P2PConfig:
    """Parse a configuration mapping into a ``P2PConfig``."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"unknown configuration sections {sorted(unknown)}")

    sections = {name: _parse_section(name, cls, data.get(name)) for name, cls in _SECTIONS.items()}

    if sections["numbering"].max_allocation_attempts < 1:
        raise ValueError("numbering.max_allocation_attempts must be at least 1")
    if not 0 <= sections["ledger"].decimal_places <= 6:
        raise ValueError("ledger.decimal_places must be between 0 and 6")
    if len(sections["ledger"].currency) != 3:
        raise ValueError("ledger.currency must be a 3-letter code")
    level = sections["logging"].level.upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}")
    sections["logging"] = LoggingSettings(level=level)

    return P2PConfig(source=source, **sections)


def load_config(path: Path) -> P2PConfig:
    """Load and parse the YAML file at ``path``."""
    return parse_config(load_yaml_file(path), source=str(path))
