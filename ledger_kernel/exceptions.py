"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must never parse error messages. Every error the ledger raises is:
  1. A TYPED exception class (catch by type, not message)
  2. Tagged with a CODE class attribute (machine-readable, API-safe)
  3. Tagged with a CATEGORY class attribute that tells the boundary layer
     how to surface it (4xx for caller mistakes, 5xx + alerting for
     integrity failures)
  4. Carrying structured DATA as attributes

Example:
    try:
        manager.post(entry_id, actor_id)
    except UnbalancedEntryError as e:
        return {"error": e.code, "debits": e.debits, "credits": e.credits}
    except LedgerError as e:
        if e.category == ErrorCategory.INTEGRITY:
            page_on_call(e)
        raise

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError                    category=validation
    |   +-- UnbalancedEntryError
    |   +-- InvalidLineError
    |   +-- InactiveAccountError
    |   +-- DuplicateCodeError
    |   +-- CyclicHierarchyError
    |   +-- ImmutableFieldError
    |   +-- AccountReferencedError
    |   +-- InvalidCurrencyError
    |   +-- InvalidRateError
    |   +-- RateWindowOverlapError
    |   +-- ClosedPeriodError
    |   +-- PeriodNotFoundError
    |   +-- PeriodOverlapError
    |
    +-- StateError                         category=state
    |   +-- InvalidStateError
    |   |   +-- ImmutabilityViolationError
    |   +-- AlreadyVoidError
    |   +-- PeriodAlreadyClosedError
    |
    +-- NotFoundError                      category=not_found
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |
    +-- LedgerIntegrityError               category=integrity
        +-- TrialBalanceIntegrityError
        +-- NoRateError
        +-- TenantMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                      | When Raised
------------|---------------------------|---------------------------------------
validation  | UNBALANCED_ENTRY          | Base debits != base credits at post
            | INVALID_LINE              | Both sides set, negative, empty entry
            | ACCOUNT_INACTIVE          | Line references a deactivated account
            | DUPLICATE_ACCOUNT_CODE    | (tenant, code) already exists
            | CYCLIC_HIERARCHY          | parent_id would create a cycle
            | IMMUTABLE_FIELD           | account_type change after posting
            | ACCOUNT_REFERENCED        | Hard delete of a referenced account
            | INVALID_CURRENCY          | Not an ISO 4217 code
            | INVALID_RATE              | Zero/negative rate or empty window
            | RATE_WINDOW_OVERLAP       | New rate window overlaps existing one
            | CLOSED_PERIOD             | Entry date inside a closed period
            | PERIOD_NOT_FOUND          | No period covers the entry date
            | PERIOD_OVERLAP            | New period overlaps an existing one
------------|---------------------------|---------------------------------------
state       | INVALID_STATE             | Transition not legal from status
            | IMMUTABILITY_VIOLATION    | ORM write to a POSTED/VOID record
            | ALREADY_VOID              | Void of an already-void entry
            | PERIOD_ALREADY_CLOSED     | Close of a closed period
------------|---------------------------|---------------------------------------
not_found   | ACCOUNT_NOT_FOUND         | Unknown account id/code
            | ENTRY_NOT_FOUND           | Unknown journal entry id
------------|---------------------------|---------------------------------------
integrity   | TRIAL_BALANCE_IMBALANCE   | Trial balance does not net to zero
            | NO_RATE                   | No rate window covers the date
            | TENANT_MISMATCH           | Row belongs to a different tenant
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """How the boundary layer should treat an error."""

    VALIDATION = "validation"
    STATE = "state"
    NOT_FOUND = "not_found"
    INTEGRITY = "integrity"


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` and a ``category`` class attribute.
    """

    code: str = "LEDGER_ERROR"
    category: ErrorCategory = ErrorCategory.VALIDATION


# =============================================================================
# Validation errors (caller mistakes, non-retryable without changes)
# =============================================================================


class ValidationError(LedgerError):
    """Base exception for caller-facing validation failures."""

    code: str = "VALIDATION_ERROR"
    category: ErrorCategory = ErrorCategory.VALIDATION


class UnbalancedEntryError(ValidationError):
    """Journal entry base-currency debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


class InvalidLineError(ValidationError):
    """A journal line (or the line set as a whole) is malformed."""

    code: str = "INVALID_LINE"

    def __init__(self, reason: str, line_number: int | None = None):
        self.reason = reason
        self.line_number = line_number
        where = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"Invalid journal line{where}: {reason}")


class InactiveAccountError(ValidationError):
    """Account is deactivated and cannot receive new lines."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str, account_code: str | None = None):
        self.account_id = account_id
        self.account_code = account_code
        super().__init__(
            f"Account {account_code or account_id} is inactive"
        )


class DuplicateCodeError(ValidationError):
    """An account with this code already exists for the tenant."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class CyclicHierarchyError(ValidationError):
    """Assigning this parent would make the account its own ancestor."""

    code: str = "CYCLIC_HIERARCHY"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Setting parent {parent_id} on account {account_id} creates a cycle"
        )


class ImmutableFieldError(ValidationError):
    """A field that is frozen by posted history was changed."""

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, entity_type: str, entity_id: str, field: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field
        self.reason = reason
        super().__init__(
            f"Cannot change {field} on {entity_type} {entity_id}: {reason}"
        )


class AccountReferencedError(ValidationError):
    """Account cannot be deleted because journal lines reference it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            f"Account {account_id} is referenced by journal lines and cannot be deleted"
        )


class InvalidCurrencyError(ValidationError):
    """Currency code is not a recognised ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class InvalidRateError(ValidationError):
    """Rate value or validity window is malformed."""

    code: str = "INVALID_RATE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid rate: {reason}")


class RateWindowOverlapError(ValidationError):
    """New rate window overlaps an existing window for the same key."""

    code: str = "RATE_WINDOW_OVERLAP"

    def __init__(self, rate_key: str, existing_rate_id: str, valid_from: str, valid_to: str | None):
        self.rate_key = rate_key
        self.existing_rate_id = existing_rate_id
        self.valid_from = valid_from
        self.valid_to = valid_to
        super().__init__(
            f"Rate window for {rate_key} overlaps existing rate {existing_rate_id} "
            f"[{valid_from}, {valid_to or 'open'})"
        )


class ClosedPeriodError(ValidationError):
    """Attempted to post into a closed accounting period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_code: str, entry_date: str):
        self.period_code = period_code
        self.entry_date = entry_date
        super().__init__(
            f"Cannot post to closed period {period_code} (entry_date: {entry_date})"
        )


class PeriodNotFoundError(ValidationError):
    """No accounting period covers the given date (or code)."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No accounting period found for: {reference}")


class PeriodOverlapError(ValidationError):
    """New period date range overlaps an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        new_period_code: str,
        existing_period_code: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.new_period_code = new_period_code
        self.existing_period_code = existing_period_code
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Period {new_period_code} overlaps with {existing_period_code} "
            f"({overlap_start} to {overlap_end})"
        )


# =============================================================================
# State errors (state machine guards)
# =============================================================================


class StateError(LedgerError):
    """Base exception for illegal lifecycle transitions."""

    code: str = "STATE_ERROR"
    category: ErrorCategory = ErrorCategory.STATE


class InvalidStateError(StateError):
    """Operation is not legal from the entity's current status."""

    code: str = "INVALID_STATE"

    def __init__(
        self,
        entity_id: str,
        current_status: str,
        operation: str,
        message: str | None = None,
    ):
        self.entity_id = entity_id
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            message
            or f"Cannot {operation} entry {entity_id} in status {current_status}"
        )


class ImmutabilityViolationError(InvalidStateError):
    """Direct ORM write to a POSTED or VOID record was blocked."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.reason = reason
        super().__init__(
            entity_id,
            current_status="locked",
            operation="modify",
            message=f"Immutability violation on {entity_type} {entity_id}: {reason}",
        )


class AlreadyVoidError(StateError):
    """Entry has already been voided."""

    code: str = "ALREADY_VOID"

    def __init__(self, entry_id: str, reversed_by_entry_id: str | None = None):
        self.entry_id = entry_id
        self.reversed_by_entry_id = reversed_by_entry_id
        super().__init__(
            f"Entry {entry_id} is already void (reversed by {reversed_by_entry_id})"
        )


class PeriodAlreadyClosedError(StateError):
    """Period is already closed."""

    code: str = "PERIOD_ALREADY_CLOSED"

    def __init__(self, period_code: str):
        self.period_code = period_code
        super().__init__(f"Period {period_code} is already closed")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(LedgerError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"
    category: ErrorCategory = ErrorCategory.NOT_FOUND


class AccountNotFoundError(NotFoundError):
    """Account id or code does not exist for this tenant."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class EntryNotFoundError(NotFoundError):
    """Journal entry id does not exist for this tenant."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


# =============================================================================
# Integrity errors (fatal, never swallowed)
# =============================================================================


class LedgerIntegrityError(LedgerError):
    """Base exception for failures that imply a bug or corrupted data."""

    code: str = "LEDGER_INTEGRITY"
    category: ErrorCategory = ErrorCategory.INTEGRITY


class TrialBalanceIntegrityError(LedgerIntegrityError):
    """Trial balance does not net to zero."""

    code: str = "TRIAL_BALANCE_IMBALANCE"

    def __init__(self, as_of: str, total_debits: str, total_credits: str):
        self.as_of = as_of
        self.total_debits = total_debits
        self.total_credits = total_credits
        super().__init__(
            f"Trial balance as of {as_of} does not net to zero: "
            f"debits={total_debits}, credits={total_credits}"
        )


class NoRateError(LedgerIntegrityError):
    """No rate window covers the requested key and date."""

    code: str = "NO_RATE"

    def __init__(self, rate_key: str, as_of: str):
        self.rate_key = rate_key
        self.as_of = as_of
        super().__init__(f"No rate for {rate_key} as of {as_of}")


class TenantMismatchError(LedgerIntegrityError):
    """A row belonging to another tenant reached this tenant's context."""

    code: str = "TENANT_MISMATCH"

    def __init__(self, expected_tenant_id: str, actual_tenant_id: str, entity_type: str):
        self.expected_tenant_id = expected_tenant_id
        self.actual_tenant_id = actual_tenant_id
        self.entity_type = entity_type
        super().__init__(
            f"{entity_type} belongs to tenant {actual_tenant_id}, "
            f"not {expected_tenant_id}"
        )
