"""Database layer - engine, base classes, types, and append-only guards."""

from p2p_kernel.db.base import UUID, Base, OrganizationScoped, TrackedBase, UUIDString
from p2p_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from p2p_kernel.db.types import Currency, DocumentNumber, Money, round_money

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "OrganizationScoped",
    "UUIDString",
    "UUID",
    "Money",
    "Currency",
    "DocumentNumber",
    "round_money",
]
