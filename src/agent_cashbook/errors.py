from __future__ import annotations


class LedgerError(Exception):
    """Base class for errors reported to the ledger consumer."""


class ValidationError(LedgerError):
    """A submitted draft is missing required fields or has an unknown type."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = list(fields or [])


class StoreError(LedgerError):
    """The record store rejected a write or failed to deliver the record set."""


class MissingOwnerError(LedgerError):
    """No owner identity is established yet."""
