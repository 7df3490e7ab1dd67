"""
Typed exception hierarchy for the purchase-to-pay kernel.

Every error a caller can receive is a subclass of ``P2PError`` carrying a
machine-readable ``code`` plus the offending field or entity id as
structured attributes.  Callers catch by category, never by message.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    P2PError (base)
    |
    +-- ValidationError                 malformed input, caller must correct it
    |   +-- UnbalancedEntryError
    |   +-- InvalidLineError
    |   +-- InvalidAmountError
    |   +-- MissingAccountMappingError
    |   +-- AccountClassMismatchError
    |   +-- DuplicateAccountCodeError
    |   +-- DuplicateSeriesCodeError
    |   +-- InvalidSeriesLineError
    |   +-- InvalidDocumentNumberError
    |   +-- ManualNumbersNotAllowedError
    |   +-- VendorMismatchError
    |
    +-- StateConflictError              entity is not in a state that allows it
    |   +-- AlreadyPostedError
    |   +-- InvalidTransitionError
    |   +-- InvoiceFullyPaidError
    |   +-- InvoiceNotPayableError
    |   +-- EntryAlreadyReversedError
    |   +-- SeriesExhaustedError
    |   +-- SeriesLineInUseError
    |   +-- ManualNumberConflictError
    |   +-- AllocationConflictError
    |   +-- OptimisticLockError
    |   +-- ImmutabilityViolationError
    |
    +-- NotFoundError                   unknown organization-scoped entity
    |   +-- EntityNotFoundError
    |   +-- UnknownAccountError
    |   +-- NoDefaultSeriesError
    |   +-- NoOpenSeriesLineError
    |
    +-- PolicyViolationError            input is well formed but breaks a rule
    |   +-- DiscountWindowExpiredError
    |   +-- DiscountExceedsTermsError
    |   +-- OverApplicationError
    |   +-- DateOutOfOrderError
    |   +-- InsufficientFundsError
    |
    +-- StorageError                    storage-layer failure, always rolled back

All four business categories are recoverable by the caller supplying
corrected input or retrying.  ``StorageError`` is the generic "internal
error" and is only raised after the unit of work has been rolled back.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class P2PError(Exception):
    """
    Base exception for all purchase-to-pay errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "P2P_ERROR"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(P2PError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal):
        self.debits = str(debits)
        self.credits = str(credits)
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


class InvalidLineError(ValidationError):
    """A journal line violates the debit/credit XOR rule."""

    code: str = "INVALID_LINE"

    def __init__(self, line_number: int | None, reason: str):
        self.line_number = line_number
        self.reason = reason
        where = f"line {line_number}" if line_number is not None else "entry"
        super().__init__(f"Invalid journal {where}: {reason}")


class InvalidAmountError(ValidationError):
    """A monetary or quantity field is negative, zero, or not a Decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field}={value}: {reason}")


class MissingAccountMappingError(ValidationError):
    """No account could be resolved for a role the operation requires."""

    code: str = "MISSING_ACCOUNT_MAPPING"

    def __init__(self, organization_id: Any, role: str):
        self.organization_id = str(organization_id)
        self.role = role
        super().__init__(
            f"No account mapped for role {role} in organization {organization_id}"
        )


class AccountClassMismatchError(ValidationError):
    """An account configured for a slot has the wrong class."""

    code: str = "ACCOUNT_CLASS_MISMATCH"

    def __init__(self, slot: str, account_id: Any, actual: str, expected: tuple[str, ...]):
        self.slot = slot
        self.account_id = str(account_id)
        self.actual = actual
        self.expected = list(expected)
        super().__init__(
            f"Account {account_id} configured for {slot} is {actual}, "
            f"expected one of {', '.join(expected)}"
        )


class DuplicateAccountCodeError(ValidationError):
    """Account code already exists in the organization."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, organization_id: Any, account_code: str):
        self.organization_id = str(organization_id)
        self.account_code = account_code
        super().__init__(
            f"Account code {account_code} already exists in organization {organization_id}"
        )


class DuplicateSeriesCodeError(ValidationError):
    """Number series code already exists in the organization."""

    code: str = "DUPLICATE_SERIES_CODE"

    def __init__(self, organization_id: Any, series_code: str):
        self.organization_id = str(organization_id)
        self.series_code = series_code
        super().__init__(
            f"Number series {series_code} already exists in organization {organization_id}"
        )


class InvalidSeriesLineError(ValidationError):
    """A number series line range is malformed."""

    code: str = "INVALID_SERIES_LINE"

    def __init__(self, series_code: str, reason: str):
        self.series_code = series_code
        self.reason = reason
        super().__init__(f"Invalid line for series {series_code}: {reason}")


class InvalidDocumentNumberError(ValidationError):
    """A document number does not fit any range of its series."""

    code: str = "INVALID_DOCUMENT_NUMBER"

    def __init__(self, series_code: str, number: str):
        self.series_code = series_code
        self.number = number
        super().__init__(f"Number {number} is outside every range of series {series_code}")


class ManualNumbersNotAllowedError(ValidationError):
    """A caller supplied a number for a series that only issues automatically."""

    code: str = "MANUAL_NUMBERS_NOT_ALLOWED"

    def __init__(self, series_code: str):
        self.series_code = series_code
        super().__init__(f"Series {series_code} does not allow manual numbers")


class VendorMismatchError(ValidationError):
    """A linked document belongs to a different vendor."""

    code: str = "VENDOR_MISMATCH"

    def __init__(self, entity_type: str, entity_id: Any, expected_vendor_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.expected_vendor_id = str(expected_vendor_id)
        super().__init__(
            f"{entity_type} {entity_id} does not belong to vendor {expected_vendor_id}"
        )


# =============================================================================
# State conflicts
# =============================================================================


class StateConflictError(P2PError):
    """Base exception for operations rejected by an entity's current state."""

    code: str = "STATE_CONFLICT"


class AlreadyPostedError(StateConflictError):
    """Document has already been posted to the ledger."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entity_type: str, entity_id: Any, journal_entry_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.journal_entry_id = str(journal_entry_id) if journal_entry_id else None
        super().__init__(
            f"{entity_type} {entity_id} already posted as journal entry {journal_entry_id}"
        )


class InvalidTransitionError(StateConflictError):
    """A lifecycle transition is not allowed from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"{workflow}: action '{action}' is not allowed from state '{from_state}'"
        )


class InvoiceFullyPaidError(StateConflictError):
    """Invoice has no amount due."""

    code: str = "INVOICE_FULLY_PAID"

    def __init__(self, invoice_id: Any):
        self.invoice_id = str(invoice_id)
        super().__init__(f"Vendor invoice {invoice_id} is already fully paid")


class InvoiceNotPayableError(StateConflictError):
    """Invoice status does not accept payments."""

    code: str = "INVOICE_NOT_PAYABLE"

    def __init__(self, invoice_id: Any, status: str):
        self.invoice_id = str(invoice_id)
        self.status = status
        super().__init__(f"Vendor invoice {invoice_id} is {status} and cannot be paid")


class EntryAlreadyReversedError(StateConflictError):
    """Journal entry was already reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: Any, reversal_entry_id: Any):
        self.entry_id = str(entry_id)
        self.reversal_entry_id = str(reversal_entry_id)
        super().__init__(
            f"Journal entry {entry_id} already reversed by {reversal_entry_id}"
        )


class SeriesExhaustedError(StateConflictError):
    """The next number would exceed the line's ending number."""

    code: str = "SERIES_EXHAUSTED"

    def __init__(self, series_code: str, ending_no: str):
        self.series_code = series_code
        self.ending_no = ending_no
        super().__init__(f"Number series {series_code} is exhausted at {ending_no}")


class SeriesLineInUseError(StateConflictError):
    """A series line that already issued numbers cannot be removed or re-ranged."""

    code: str = "SERIES_LINE_IN_USE"

    def __init__(self, series_code: str, line_id: Any):
        self.series_code = series_code
        self.line_id = str(line_id)
        super().__init__(
            f"Line {line_id} of series {series_code} has already issued numbers"
        )


class ManualNumberConflictError(StateConflictError):
    """A caller-supplied number was already issued."""

    code: str = "MANUAL_NUMBER_CONFLICT"

    def __init__(self, series_code: str, number: str):
        self.series_code = series_code
        self.number = number
        super().__init__(f"Number {number} already issued in series {series_code}")


class AllocationConflictError(StateConflictError):
    """Compare-and-swap on a series line kept losing to concurrent writers."""

    code: str = "ALLOCATION_CONFLICT"

    def __init__(self, series_code: str, attempts: int):
        self.series_code = series_code
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a number from {series_code} after {attempts} attempts"
        )


class OptimisticLockError(StateConflictError):
    """Entity was modified by another transaction since it was read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class ImmutabilityViolationError(StateConflictError):
    """Attempted to modify or delete a posted ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(P2PError):
    """Base exception for unknown organization-scoped entities."""

    code: str = "NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Entity does not exist in the organization."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} {entity_id} not found")


class UnknownAccountError(NotFoundError):
    """Account is not part of the organization or is inactive."""

    code: str = "UNKNOWN_ACCOUNT"

    def __init__(self, account_id: Any, organization_id: Any, reason: str = "not found"):
        self.account_id = str(account_id)
        self.organization_id = str(organization_id)
        self.reason = reason
        super().__init__(
            f"Account {account_id} unusable in organization {organization_id}: {reason}"
        )


class NoDefaultSeriesError(NotFoundError):
    """No series is flagged default for the document type."""

    code: str = "NO_DEFAULT_SERIES"

    def __init__(self, organization_id: Any, document_type: str):
        self.organization_id = str(organization_id)
        self.document_type = document_type
        super().__init__(
            f"No default number series for {document_type} in organization {organization_id}"
        )


class NoOpenSeriesLineError(NotFoundError):
    """No open series line covers the requested date."""

    code: str = "NO_OPEN_SERIES_LINE"

    def __init__(self, series_code: str, as_of: Any):
        self.series_code = series_code
        self.as_of = str(as_of)
        super().__init__(f"No open line in series {series_code} for {as_of}")


# =============================================================================
# Policy violations
# =============================================================================


class PolicyViolationError(P2PError):
    """Base exception for well-formed requests that break a business rule."""

    code: str = "POLICY_VIOLATION"


class DiscountWindowExpiredError(PolicyViolationError):
    """Early-payment discount taken outside the terms' discount window."""

    code: str = "DISCOUNT_WINDOW_EXPIRED"

    def __init__(self, invoice_id: Any, payment_date: Any, window_end: Any):
        self.invoice_id = str(invoice_id)
        self.payment_date = str(payment_date)
        self.window_end = str(window_end) if window_end else None
        super().__init__(
            f"Discount on invoice {invoice_id} not allowed on {payment_date} "
            f"(window ends {window_end})"
        )


class DiscountExceedsTermsError(PolicyViolationError):
    """Discount taken is larger than the payment terms allow."""

    code: str = "DISCOUNT_EXCEEDS_TERMS"

    def __init__(self, invoice_id: Any, discount: Decimal, allowed: Decimal):
        self.invoice_id = str(invoice_id)
        self.discount = str(discount)
        self.allowed = str(allowed)
        super().__init__(
            f"Discount {discount} on invoice {invoice_id} exceeds allowed {allowed}"
        )


class OverApplicationError(PolicyViolationError):
    """Payment application would settle more than is owed or paid."""

    code: str = "OVER_APPLICATION"

    def __init__(self, entity_id: Any, requested: Decimal, available: Decimal):
        self.entity_id = str(entity_id)
        self.requested = str(requested)
        self.available = str(available)
        super().__init__(
            f"Over-application on {entity_id}: requested {requested}, available {available}"
        )


class DateOutOfOrderError(PolicyViolationError):
    """Series requires chronological numbering and the date goes backwards."""

    code: str = "DATE_OUT_OF_ORDER"

    def __init__(self, series_code: str, as_of: Any, last_date_used: Any):
        self.series_code = series_code
        self.as_of = str(as_of)
        self.last_date_used = str(last_date_used)
        super().__init__(
            f"Series {series_code} last used on {last_date_used}; {as_of} is earlier"
        )


class InsufficientFundsError(PolicyViolationError):
    """Bank balance does not cover the payment."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, bank_account_id: Any, balance: Decimal, requested: Decimal):
        self.bank_account_id = str(bank_account_id)
        self.balance = str(balance)
        self.requested = str(requested)
        super().__init__(
            f"Bank account {bank_account_id} balance {balance} is below {requested}"
        )


# =============================================================================
# Storage
# =============================================================================


class StorageError(P2PError):
    """Storage-layer failure. The unit of work has been rolled back."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")
