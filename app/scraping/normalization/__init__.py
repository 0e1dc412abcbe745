"""
Normalization and content-addressing helpers.
"""

from app.scraping.normalization.field_normalizer import (
    canonical_city,
    content_hash,
    enrich_record,
    fold_turkish,
    normalize_fields,
    normalize_phone,
    normalize_value,
    parse_amount,
    validate_tckn,
)

__all__ = [
    "canonical_city",
    "content_hash",
    "enrich_record",
    "fold_turkish",
    "normalize_fields",
    "normalize_phone",
    "normalize_value",
    "parse_amount",
    "validate_tckn",
]
