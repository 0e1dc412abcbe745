"""
app/schemas package marker.
"""

from app.schemas.quotes import (
    PolicyResponse,
    QuoteCreateRequest,
    QuoteResponse,
    ScrapedQuoteResponse,
    VehicleDetails,
)
from app.schemas.scraping import (
    HealthResponse,
    JobAcceptedResponse,
    QueueStatsResponse,
    ScrapeRunRequest,
    ScraperRunResponse,
    ScraperTargetResponse,
)

__all__ = [
    "HealthResponse",
    "JobAcceptedResponse",
    "PolicyResponse",
    "QueueStatsResponse",
    "QuoteCreateRequest",
    "QuoteResponse",
    "ScrapeRunRequest",
    "ScrapedQuoteResponse",
    "ScraperRunResponse",
    "ScraperTargetResponse",
    "VehicleDetails",
]
