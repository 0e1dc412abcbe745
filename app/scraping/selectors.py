"""
Field -> CSS selector map resolution for static targets.
"""

from __future__ import annotations

from typing import Any, Mapping

NAME_HEURISTIC_SELECTORS: dict[str, dict[str, str]] = {
    "product": {
        "name": "h1, .product-title, .product-name",
        "description": ".product-description, .description, p",
        "price": ".price, .premium, .cost",
        "features": ".features, .benefits, ul",
    },
    "contact": {
        "phone": ".phone, .tel, [href^='tel:']",
        "email": ".email, .mail, [href^='mailto:']",
        "address": ".address, .location, .contact-address",
    },
    "news": {
        "title": "h1, h2, .title, .news-title",
        "content": ".content, .news-content, .article-content",
        "date": ".date, .published, .news-date",
    },
}

DEFAULT_SELECTORS: dict[str, str] = {
    "title": "h1, h2, .title",
    "content": ".content, p",
    "link": "a[href]",
}


def resolve_selectors(*, name: str, selector_json: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Pick the selector map for a target.

    Order: explicit selector_json (string values only), then the first
    heuristic whose keyword appears in the target name, then the generic
    default.
    """

    if selector_json:
        explicit = {
            str(field): value.strip()
            for field, value in selector_json.items()
            if isinstance(value, str) and value.strip()
        }
        if explicit:
            return explicit

    lowered = name.lower()
    for keyword, selectors in NAME_HEURISTIC_SELECTORS.items():
        if keyword in lowered:
            return dict(selectors)
    return dict(DEFAULT_SELECTORS)
