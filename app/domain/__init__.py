"""
Domain value objects shared by the scraping pipeline and the quote workflow.
"""

from app.domain.customer_profile import CustomerProfile
from app.domain.offers import QuoteOffer, money
from app.domain.quote_lifecycle import can_transition, ensure_transition
from app.domain.target_scraping import TargetScrapeSummary

__all__ = [
    "CustomerProfile",
    "QuoteOffer",
    "TargetScrapeSummary",
    "can_transition",
    "ensure_transition",
    "money",
]
