"""
Insurance quote fetching: field map registry, live and simulated strategies.
"""

from app.scraping.insurance.field_maps import CompanyFieldMap, FieldMapRegistry, get_field_map_registry
from app.scraping.insurance.live import LiveQuoteStrategy
from app.scraping.insurance.profile import build_customer_profile
from app.scraping.insurance.simulated import SimulatedQuoteStrategy
from app.scraping.insurance.strategies import FallbackQuoteStrategy, QuoteStrategy

__all__ = [
    "CompanyFieldMap",
    "FallbackQuoteStrategy",
    "FieldMapRegistry",
    "LiveQuoteStrategy",
    "QuoteStrategy",
    "SimulatedQuoteStrategy",
    "build_customer_profile",
    "get_field_map_registry",
]
