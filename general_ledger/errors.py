"""
Ledger error hierarchy.

Every failure the ledger raises is a LedgerError. LedgerError
subclasses ValueError so callers that only care about "the input
was rejected" can keep catching ValueError, while the API layer
can turn the error into a structured response:

    {"success": false, "code": ..., "message": ..., "errors": {field: [...]}}

Errors are grouped into categories:

- validation:   bad input shape or range, rejected before any write
- referential:  a referenced record is missing or a unique key is taken
- invariant:    the request would break a ledger guarantee
- structural:   a destructive operation would orphan data or history
- confirmation: an administrative override was not confirmed
"""

VALIDATION = "validation"
REFERENTIAL = "referential"
INVARIANT = "invariant"
STRUCTURAL = "structural"
CONFIRMATION = "confirmation"


class LedgerError(ValueError):
    """Base class for every error raised by the ledger services."""

    code = "LEDGER_ERROR"
    category = VALIDATION
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_detail(self) -> dict:
        """Structured, user-facing description of the failure."""
        detail = {
            "success": False,
            "code": self.code,
            "category": self.category,
            "message": self.message,
        }
        if self.field:
            detail["errors"] = {self.field: [self.message]}
        return detail


# --- Validation ---

class ValidationFailed(LedgerError):
    code = "VALIDATION_FAILED"
    category = VALIDATION
    status_code = 422


# --- Referential ---

class NotFound(LedgerError):
    code = "NOT_FOUND"
    category = REFERENTIAL
    status_code = 404


class UnknownAccount(LedgerError):
    code = "UNKNOWN_ACCOUNT"
    category = REFERENTIAL


class InvalidParent(LedgerError):
    code = "INVALID_PARENT"
    category = REFERENTIAL


class DuplicateCode(LedgerError):
    code = "DUPLICATE_CODE"
    category = REFERENTIAL
    status_code = 409


class DuplicateEntryNumber(LedgerError):
    code = "DUPLICATE_ENTRY_NUMBER"
    category = REFERENTIAL
    status_code = 409


class DuplicateName(LedgerError):
    code = "DUPLICATE_NAME"
    category = REFERENTIAL
    status_code = 409


# --- Invariant ---

class SameAccount(LedgerError):
    code = "SAME_ACCOUNT"
    category = INVARIANT


class InvalidAmount(LedgerError):
    code = "INVALID_AMOUNT"
    category = INVARIANT


class SelfParent(LedgerError):
    code = "SELF_PARENT"
    category = INVARIANT


class PeriodClosed(LedgerError):
    code = "PERIOD_CLOSED"
    category = INVARIANT
    status_code = 409


class DateOutOfPeriod(LedgerError):
    code = "DATE_OUT_OF_PERIOD"
    category = INVARIANT


class InvalidRange(LedgerError):
    code = "INVALID_RANGE"
    category = INVARIANT


class AlreadyClosed(LedgerError):
    code = "ALREADY_CLOSED"
    category = INVARIANT
    status_code = 409


class AlreadyReversed(LedgerError):
    code = "ALREADY_REVERSED"
    category = INVARIANT
    status_code = 409


class NoActiveYear(LedgerError):
    code = "NO_ACTIVE_YEAR"
    category = INVARIANT
    status_code = 409


class NoRetainedEarningsAccountConfigured(LedgerError):
    code = "NO_RETAINED_EARNINGS_ACCOUNT"
    category = INVARIANT
    status_code = 409


# --- Structural ---

class HasChildren(LedgerError):
    code = "HAS_CHILDREN"
    category = STRUCTURAL
    status_code = 409


class Referenced(LedgerError):
    code = "REFERENCED"
    category = STRUCTURAL
    status_code = 409


class IsCurrentYear(LedgerError):
    code = "IS_CURRENT_YEAR"
    category = STRUCTURAL
    status_code = 409


class HasEntries(LedgerError):
    code = "HAS_ENTRIES"
    category = STRUCTURAL
    status_code = 409


# --- Confirmation ---

class ConfirmationRequired(LedgerError):
    code = "CONFIRMATION_REQUIRED"
    category = CONFIRMATION
    status_code = 428
