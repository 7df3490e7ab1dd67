"""
Pure domain layer.

Value objects, DTOs, number arithmetic and workflow definitions with NO
dependencies on the ORM, the database or I/O (SystemClock excepted).
"""

from p2p_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from p2p_kernel.domain.dtos import AccountInfo, JournalEntryRecord, JournalLineRecord, LineSpec
from p2p_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AccountInfo",
    "JournalEntryRecord",
    "JournalLineRecord",
    "LineSpec",
    "Guard",
    "Transition",
    "Workflow",
]
