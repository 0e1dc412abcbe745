"""
Storage layer exports.
"""

from app.scraping.storage.base import ScrapedRowStorage
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyScrapedRowStorage

__all__ = ["ScrapedRowStorage", "SQLAlchemyScrapedRowStorage"]
