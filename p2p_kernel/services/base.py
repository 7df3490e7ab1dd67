"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session contract for every kernel service.
    Kernel services persist with ``session.flush()`` only; the module
    service or facade that owns the unit of work commits or rolls back.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: a kernel service never calls ``commit()`` or
    ``rollback()``, so a receipt or payment and the journal entry and
    document number it consumes land in one transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session

from p2p_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
