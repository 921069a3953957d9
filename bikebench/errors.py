from __future__ import annotations


class ValidationError(ValueError):
    """Operator input that cannot be accepted; nothing was written to the store."""


class InvalidTransitionError(ValidationError):
    """The ticket is not in a state that allows the requested change."""


class StoreError(RuntimeError):
    """A read or write against the local database failed."""
