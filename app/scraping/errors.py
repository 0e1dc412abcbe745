"""
Scraping-layer exceptions.

NavigationError is treated as transient by the task orchestrator and retried;
the rest describe a page that loaded but could not be worked with.
"""

from __future__ import annotations

from typing import Any


class ScrapeError(Exception):
    """Base exception for collector and browser failures."""

    def __init__(self, message: str, *, stats: Any = None) -> None:
        super().__init__(message)
        # Run counters gathered before the failure, if any.
        self.stats = stats


class NavigationError(ScrapeError):
    """Raised when a page cannot be fetched or navigation times out."""


class ExtractionError(ScrapeError):
    """Raised when the extraction step fails or yields no usable data."""


class FormAutomationError(ScrapeError):
    """Raised when a quote form cannot be driven (e.g. no submit control)."""


class BrowserUnavailableError(ScrapeError):
    """Raised when the browser driver or Chromium process cannot be launched."""
