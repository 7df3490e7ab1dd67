"""Read-only selectors (query side)."""

from p2p_kernel.selectors.base import BaseSelector
from p2p_kernel.selectors.journal_selector import JournalSelector

__all__ = ["BaseSelector", "JournalSelector"]
