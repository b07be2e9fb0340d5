"""
Domain exceptions for the ledger service.

Services raise these; the API layer converts them to HTTP responses in
``splitsmart.main``. None of them carry HTTP concerns themselves.
"""


class LedgerServiceError(Exception):
    """Base exception for all ledger service errors."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(LedgerServiceError):
    """Raised when a request is malformed or semantically invalid.

    Non-member payer or participant, non-positive amount, empty split,
    self-settlement.
    """
    pass


class NotFoundError(LedgerServiceError):
    """Raised when a referenced group or user does not exist."""
    pass


class ConcurrencyError(LedgerServiceError):
    """Raised when an append could not get exclusive access to its group.

    Retryable by the caller.
    """
    pass


class InvariantViolation(LedgerServiceError):
    """Raised when a computed balance map does not sum to zero.

    Indicates a bug in the ledger or balance calculation, never bad input.
    """
    pass
