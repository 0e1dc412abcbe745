"""
app/api/routers package marker.
"""

from app.api.routers.quotes import router as quotes_router
from app.api.routers.scraping import router as scraping_router

__all__ = [
    "quotes_router",
    "scraping_router",
]
