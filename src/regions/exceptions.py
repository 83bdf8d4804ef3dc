"""Errors raised by the regional revenue ledger."""
from core.exceptions import DataIntegrityError


class LedgerIntegrityError(DataIntegrityError):
    """licensee_share + hrm8_share does not equal total_revenue, or a share is negative."""


class RevenuePeriodOverlapError(ValueError):
    """A revenue period overlaps an existing period of the same region."""
