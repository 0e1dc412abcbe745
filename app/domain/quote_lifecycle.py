"""
app/domain/quote_lifecycle.py

Forward-only quote status machine.
"""

from __future__ import annotations

from db.models.quote import QuoteStatus
from db.repositories.errors import QuoteTransitionError

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    QuoteStatus.PENDING: frozenset({QuoteStatus.PROCESSING}),
    # processing -> processing lets a retried quote:scrape job re-claim the quote.
    QuoteStatus.PROCESSING: frozenset({QuoteStatus.PROCESSING, QuoteStatus.COMPLETED}),
    QuoteStatus.COMPLETED: frozenset({QuoteStatus.APPROVED}),
    QuoteStatus.APPROVED: frozenset(),
}

TERMINAL_FOR_SCRAPING = frozenset({QuoteStatus.COMPLETED, QuoteStatus.APPROVED})


def can_transition(current: str, requested: str) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, requested: str) -> str:
    """
    Return `requested` if the move is allowed, else raise QuoteTransitionError.
    """

    if not can_transition(current, requested):
        raise QuoteTransitionError(current, requested)
    return requested
