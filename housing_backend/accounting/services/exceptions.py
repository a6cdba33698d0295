# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

Note:
- Balance sheet imbalance is NOT an exception; it is reported as data
  (`balance_check`) so operators still get the numbers.
- Partial accrual batches are NOT exceptions either; skipped items are
  returned on the batch result.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class PostingValidationError(AccountingServiceError):
    """Raised when a candidate posting fails validation (nothing is persisted)."""


class EmptyLineSetError(PostingValidationError):
    """Raised when a posting has fewer than two lines."""


class UnknownAccountError(PostingValidationError):
    """Raised when a posting line references a code missing from the chart."""


class UnbalancedEntryError(PostingValidationError):
    """Raised when debits and credits (or the declared totals) disagree."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a ledger entry cannot be created."""


class IdempotencyError(AccountingServiceError):
    """Raised on duplicate or retried accounting events."""


class ReversalError(AccountingServiceError):
    """Raised when an entry cannot be reversed."""


class NotFoundError(AccountingServiceError):
    """Raised when a subject or scope has no ledger activity."""
