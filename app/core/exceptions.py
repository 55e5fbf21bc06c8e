"""
Domain errors raised by the pallet ledger services.

Services raise these; API endpoints translate them to HTTP status codes and
batch jobs record them per item instead of aborting the run.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for pallet ledger errors."""
    pass


class NotConfiguredError(LedgerError):
    """The system timestamp has never been initialized."""
    pass


class InvalidArgumentError(LedgerError, ValueError):
    """Rejected input: non-positive intervals, malformed ids or values."""
    pass


class NotFoundError(LedgerError, LookupError):
    """Referenced record does not exist."""
    pass


class DataIntegrityGapError(LedgerError):
    """An order detail has neither an estimated nor an actual pallet source."""

    def __init__(self, order_detail_id: int, message: Optional[str] = None):
        self.order_detail_id = order_detail_id
        super().__init__(
            message
            or f"Order detail {order_detail_id} has no inventory lot and no estimated pallets"
        )


class ConcurrentWriteConflictError(LedgerError):
    """The database kept reporting serialization failures for a reconciliation."""

    def __init__(self, order_detail_id: int, attempts: int):
        self.order_detail_id = order_detail_id
        self.attempts = attempts
        super().__init__(
            f"Reconciliation of order detail {order_detail_id} conflicted "
            f"{attempts} time(s); retry later"
        )


# SQLSTATE codes for serialization_failure and deadlock_detected
SERIALIZATION_FAILURE_CODES = {"40001", "40P01"}


def is_serialization_failure(exc: BaseException) -> bool:
    """Check whether a DBAPI error wraps a retryable serialization failure."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in SERIALIZATION_FAILURE_CODES
