"""Errors raised by the points ledger and redemption services."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for service-layer failures."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(LedgerError):
    """A referenced user, voucher or redemption does not exist."""


class OutOfStockError(LedgerError):
    """The voucher has no units left or has been withdrawn from the catalogue."""


class InsufficientBalanceError(LedgerError):
    """The user does not hold enough points for the operation."""

    def __init__(self, required: int, available: int, detail: str | None = None):
        self.required = required
        self.available = available
        super().__init__(
            detail or f"Not enough points: {required} required, {available} available."
        )


class InvalidTransitionError(LedgerError):
    """The redemption is not in a state that allows the requested change."""


class ConflictError(LedgerError):
    """The change clashes with existing state, such as a badge the user already holds."""


class DomainValidationError(LedgerError):
    """Input rejected before touching the store."""


class StoreError(LedgerError):
    """The store failed (timeout, lost connection, constraint). Nothing was committed."""
