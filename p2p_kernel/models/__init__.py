"""ORM models for the purchase-to-pay kernel."""

from p2p_kernel.models.account import Account, AccountClass, SystemRole
from p2p_kernel.models.account_configuration import (
    ROLE_SLOTS,
    SLOT_CLASSES,
    AccountConfiguration,
)
from p2p_kernel.models.journal import JournalEntry, JournalLine
from p2p_kernel.models.number_series import (
    DocumentType,
    IssuedNumber,
    NoSerie,
    NoSerieLine,
)

__all__ = [
    "Account",
    "AccountClass",
    "SystemRole",
    "AccountConfiguration",
    "ROLE_SLOTS",
    "SLOT_CLASSES",
    "JournalEntry",
    "JournalLine",
    "DocumentType",
    "IssuedNumber",
    "NoSerie",
    "NoSerieLine",
]
