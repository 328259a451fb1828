"""
Ledger error taxonomy for AirLedger.

Write failures (WriteRejected, WriteTimeout) are logged by the generation loop
and the cycle is skipped. Read failures are surfaced to HTTP callers as an
error payload and are never reported as an empty or "unknown" ledger.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for every ledger failure."""


class WriteRejected(LedgerError):
    """The underlying store refused the append."""


class WriteTimeout(LedgerError):
    """No append confirmation was observed within the bounded wait."""


class ReadUnavailable(LedgerError):
    """The store could not be reached for a read."""


class IndexOutOfRange(LedgerError):
    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Reading index {index} out of range (count={count})")


class NotFound(LedgerError):
    """No record at an index the count says exists. Transient; retryable."""

    def __init__(self, index: int, detail: Optional[str] = None):
        self.index = index
        msg = f"No reading stored at index {index}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class PartialReadFailure(LedgerError):
    """One read inside a last-N batch failed; the whole batch is discarded."""

    def __init__(self, index: int, cause: Exception):
        self.index = index
        self.cause = cause
        super().__init__(f"Batch read failed at index {index}: {cause}")


class DeploymentError(LedgerError):
    """The ledger identifier could not be resolved from deployment metadata."""
