"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.customer import Customer
from db.models.policy import Policy, PolicyStatus
from db.models.quote import OfferSource, Quote, QuoteStatus, ScrapedQuote, ScrapedQuoteStatus
from db.models.scraped_row import ScrapedRow
from db.models.scraper_run import ScraperRun, ScraperRunStatus
from db.models.scraper_target import ScraperTarget

__all__ = [
    "Customer",
    "OfferSource",
    "Policy",
    "PolicyStatus",
    "Quote",
    "QuoteStatus",
    "ScrapedQuote",
    "ScrapedQuoteStatus",
    "ScrapedRow",
    "ScraperRun",
    "ScraperRunStatus",
    "ScraperTarget",
]
