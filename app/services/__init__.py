"""
app/services package marker.
"""

from app.services.quote_workflow_service import (
    OfferNotApprovableError,
    QuoteWorkflowService,
    get_quote_workflow_service,
)
from app.services.scraping_control_service import (
    ScrapingControlService,
    TargetDisabledError,
    get_scraping_control_service,
)

__all__ = [
    "OfferNotApprovableError",
    "QuoteWorkflowService",
    "get_quote_workflow_service",
    "ScrapingControlService",
    "TargetDisabledError",
    "get_scraping_control_service",
]
