from __future__ import annotations


class RecordNotFoundError(ValueError):
    """Raised when a referenced row does not exist."""


class ConflictError(ValueError):
    """Raised when a write would break a uniqueness or booking rule."""
