"""
Typed exception hierarchy for the ledger kernel.

Every error is a typed class with a machine-readable ``code`` class
attribute, and every instance carries its context as structured
attributes so callers never parse message strings.

Each error also declares a ``category`` that a transport adapter maps to
its own status vocabulary:

    conflict     -- the request contradicts stored state (re-preview)
    gone         -- the target is used, expired or missing (do not retry)
    validation   -- the proposal failed hard validation rules
    unavailable  -- transient; safe to retry later
    invalid      -- malformed input or programming error

Hierarchy:

    LekkaKernelError (base)
    |
    +-- PreviewError
    |   +-- PreviewNotFoundError        gone
    |   +-- PreviewGoneError            gone
    |   +-- PreviewExpiredError         gone
    |   +-- PreviewHashMismatchError    conflict
    |   +-- PreviewTenantMismatchError  conflict
    |
    +-- NumberingError
    |   +-- NumberingUnavailableError   unavailable
    |   +-- ReservationNotFoundError
    |   +-- ReservationStateError
    |
    +-- PostingError
    |   +-- ValidationFailedError       validation
    |   +-- UnbalancedJournalError
    |   +-- SameAccountPostingError
    |   +-- EmptyJournalError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |
    +-- FundsError
    |   +-- FacilityConflictError
    |
    +-- InputError
        +-- LineParseError
        +-- DocumentParseError

Handling pattern:

    try:
        result = orchestrator.confirm(preview_id, expected_hash, key, tenant)
    except PreviewGoneError:
        # already posted, do not retry
        ...
    except PreviewHashMismatchError as e:
        # client must re-preview; e.expected_hash / e.received_hash
        ...
"""

from typing import Any


class LekkaKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification and a ``category`` for transport mapping.
    """

    code: str = "LEKKA_KERNEL_ERROR"
    category: str = "invalid"


# Preview snapshot errors


class PreviewError(LekkaKernelError):
    """Base exception for preview snapshot errors."""

    code: str = "PREVIEW_ERROR"


class PreviewNotFoundError(PreviewError):
    """No snapshot exists for the preview id."""

    code: str = "PREVIEW_NOT_FOUND"
    category: str = "gone"

    def __init__(self, preview_id: str):
        self.preview_id = str(preview_id)
        super().__init__(f"Preview not found: {preview_id}")


class PreviewGoneError(PreviewError):
    """
    Snapshot was already confirmed.

    Clients must treat this as "already posted, do not retry".
    """

    code: str = "PREVIEW_GONE"
    category: str = "gone"

    def __init__(self, preview_id: str, status: str):
        self.preview_id = str(preview_id)
        self.status = status
        super().__init__(f"Preview {preview_id} is no longer active (status={status})")


class PreviewExpiredError(PreviewError):
    """Snapshot lapsed or was cancelled before confirm."""

    code: str = "PREVIEW_EXPIRED"
    category: str = "gone"

    def __init__(self, preview_id: str, expires_at: Any):
        self.preview_id = str(preview_id)
        self.expires_at = expires_at
        super().__init__(f"Preview {preview_id} expired at {expires_at}")


class PreviewHashMismatchError(PreviewError):
    """
    Confirm-time hash differs from the stored snapshot hash.

    Raised when the client is trying to confirm something other than
    what was previewed.  The client must re-preview.
    """

    code: str = "PREVIEW_HASH_MISMATCH"
    category: str = "conflict"

    def __init__(self, preview_id: str, expected_hash: str, received_hash: str):
        self.preview_id = str(preview_id)
        self.expected_hash = expected_hash
        self.received_hash = received_hash
        super().__init__(
            f"Preview {preview_id} is stale or tampered: "
            f"stored {expected_hash}, received {received_hash}"
        )


class PreviewTenantMismatchError(PreviewError):
    """Snapshot belongs to a different tenant."""

    code: str = "PREVIEW_TENANT_MISMATCH"
    category: str = "conflict"

    def __init__(self, preview_id: str, tenant_id: str):
        self.preview_id = str(preview_id)
        self.tenant_id = tenant_id
        super().__init__(f"Preview {preview_id} does not belong to tenant {tenant_id}")


# Numbering errors


class NumberingError(LekkaKernelError):
    """Base exception for document numbering errors."""

    code: str = "NUMBERING_ERROR"


class NumberingUnavailableError(NumberingError):
    """
    Reservation retries exhausted without a free number.

    Retryable: the caller should back off and try again.
    """

    code: str = "NUMBER_UNAVAILABLE"
    category: str = "unavailable"

    def __init__(self, tenant_id: str, doc_type: str, fiscal_year: int, attempts: int):
        self.tenant_id = tenant_id
        self.doc_type = doc_type
        self.fiscal_year = fiscal_year
        self.attempts = attempts
        super().__init__(
            f"No document number available for {tenant_id}/{doc_type}/{fiscal_year} "
            f"after {attempts} attempts"
        )


class ReservationNotFoundError(NumberingError):
    """Reservation id does not exist."""

    code: str = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: str):
        self.reservation_id = str(reservation_id)
        super().__init__(f"Reservation not found: {reservation_id}")


class ReservationStateError(NumberingError):
    """Requested transition is not allowed from the current status."""

    code: str = "RESERVATION_STATE"
    category: str = "conflict"

    def __init__(self, reservation_id: str, current: str, requested: str):
        self.reservation_id = str(reservation_id)
        self.current = current
        self.requested = requested
        super().__init__(
            f"Reservation {reservation_id} cannot move from {current} to {requested}"
        )


# Posting errors


class PostingError(LekkaKernelError):
    """Base exception for posting errors."""

    code: str = "POSTING_ERROR"


class ValidationFailedError(PostingError):
    """Hard validation errors block the operation."""

    code: str = "VALIDATION_FAILED"
    category: str = "validation"

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        codes = ", ".join(sorted({e["code"] for e in errors}))
        super().__init__(f"Validation failed: {codes}")


class UnbalancedJournalError(PostingError):
    """Debit total differs from credit total."""

    code: str = "UNBALANCED_JOURNAL"

    def __init__(self, debit_minor: int, credit_minor: int):
        self.debit_minor = debit_minor
        self.credit_minor = credit_minor
        super().__init__(
            f"Journal does not balance: debits={debit_minor}, credits={credit_minor}"
        )


class SameAccountPostingError(PostingError):
    """A ledger pair would debit and credit the same account."""

    code: str = "SAME_ACCOUNT_POSTING"

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Refusing to post a pair against a single account: {account}")


class EmptyJournalError(PostingError):
    """Nothing to post."""

    code: str = "EMPTY_JOURNAL"

    def __init__(self, preview_id: str):
        self.preview_id = str(preview_id)
        super().__init__(f"Preview {preview_id} carries no ledger pairs")


# Chart of accounts errors


class AccountError(LekkaKernelError):
    """Base exception for chart of accounts errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Ledger name does not resolve for the tenant or global scope."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, tenant_id: str, name: str):
        self.tenant_id = tenant_id
        self.name = name
        super().__init__(f"Ledger not found for {tenant_id}: {name}")


class AccountInactiveError(AccountError):
    """Ledger exists but is deactivated."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, tenant_id: str, name: str):
        self.tenant_id = tenant_id
        self.name = name
        super().__init__(f"Ledger is inactive for {tenant_id}: {name}")


# Funds errors


class FundsError(LekkaKernelError):
    """Base exception for funds and facility errors."""

    code: str = "FUNDS_ERROR"


class FacilityConflictError(FundsError):
    """Facility parameters are inconsistent."""

    code: str = "FACILITY_CONFLICT"

    def __init__(self, account: str, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"Invalid facility for {account}: {reason}")


# Input errors


class InputError(LekkaKernelError):
    """Base exception for malformed upstream input."""

    code: str = "INPUT_ERROR"


class LineParseError(InputError):
    """A candidate journal row could not be parsed."""

    code: str = "LINE_PARSE_ERROR"

    def __init__(self, index: int, field: str, value: Any):
        self.index = index
        self.field = field
        self.value = value
        super().__init__(f"Line {index}: cannot parse {field} from {value!r}")


class DocumentParseError(InputError):
    """A document model field could not be parsed."""

    code: str = "DOCUMENT_PARSE_ERROR"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Document field {field}: cannot parse {value!r}")
