"""Errors raised by the commission engine."""
from core.exceptions import DataIntegrityError


class CommissionIntegrityError(DataIntegrityError):
    """Negative amount, or amount changed after confirmation."""
