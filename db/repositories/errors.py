"""
Repository-layer exceptions for the quote and scraping stores.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class RecordNotFoundError(RepositoryError):
    """Raised when a referenced customer, target, quote or offer does not exist."""


class QuoteTransitionError(RepositoryError):
    """Raised when a quote status change is not allowed by the lifecycle."""

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        self.current = current
        self.requested = requested
        super().__init__(message or f"Quote cannot move from '{current}' to '{requested}'.")


class PolicyNumberConflictError(RepositoryError):
    """Raised when a unique policy number could not be allocated."""
