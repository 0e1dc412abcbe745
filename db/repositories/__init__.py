"""
Repository layer exports.
"""

from db.repositories.customer_repository import CustomerRepository
from db.repositories.errors import (
    PolicyNumberConflictError,
    QuoteTransitionError,
    RecordNotFoundError,
    RepositoryError,
)
from db.repositories.quote_repository import QuoteRepository
from db.repositories.scraper_repository import (
    ScrapedRowRepository,
    ScraperRunRepository,
    ScraperTargetRepository,
)

__all__ = [
    "CustomerRepository",
    "QuoteRepository",
    "ScraperTargetRepository",
    "ScraperRunRepository",
    "ScrapedRowRepository",
    "RepositoryError",
    "RecordNotFoundError",
    "QuoteTransitionError",
    "PolicyNumberConflictError",
]
