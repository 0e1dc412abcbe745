"""
Anti-bot evasion applied to a page after it has loaded.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from app.scraping.headless.scripts import STEALTH_SCRIPT
from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


def apply_stealth(page: Page) -> bool:
    """
    Mask the usual automation fingerprints (webdriver flag, plugins,
    languages, window.chrome, permissions query).

    A failure is logged and the page is used as-is.
    """

    try:
        page.evaluate(STEALTH_SCRIPT)
    except PlaywrightError as exc:
        log_event(logger, logging.WARNING, "stealth_failed", url=page.url, error=str(exc))
        return False
    return True


def humanize(
    page: Page,
    *,
    rng: random.Random,
    sleep: Callable[[float], None],
) -> None:
    """Mouse moves, a scroll down and back up, then a short random pause."""

    try:
        page.mouse.move(100, 100)
        sleep(0.1)
        page.mouse.move(200, 200)
        sleep(0.1)
        page.mouse.wheel(0, 300)
        sleep(0.5)
        page.mouse.wheel(0, -300)
    except PlaywrightError as exc:
        log_event(logger, logging.WARNING, "humanize_failed", url=page.url, error=str(exc))
    sleep(rng.uniform(1.0, 3.0))
