"""
Error types shared by the ledger, the store and the page handlers.

Handlers turn these into flashed notifications; nothing here knows about Flask.
"""


class ERPError(Exception):
    """Base class for errors the dashboard reports back to the user."""


class ValidationError(ERPError):
    """Bad form input: missing field, non-positive quantity/price, unknown record.

    Raised before any mutation so the operation is aborted cleanly.
    """


class StoreError(ERPError):
    """The backing database rejected a write (commit failed and was rolled back)."""
