"""
Playwright-backed browser session and page engine.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from playwright.sync_api import Browser, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from app.config import HeadlessSettings
from app.scraping.errors import BrowserUnavailableError, ExtractionError, NavigationError, ScrapeError
from app.scraping.headless.scripts import PAGE_EXTRACTION_SCRIPT
from app.scraping.headless.stealth import apply_stealth, humanize
from app.scraping.logging_utils import error_fields, log_event
from app.scraping.normalization import normalize_fields
from app.scraping.storage import ScrapedRowStorage
from app.scraping.types import ScrapeStats

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
]


class BrowserSession:
    """
    Owns the Playwright driver and one Chromium process.

    Playwright sync objects are bound to the thread that created them, so a
    session is opened and closed inside a single job.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        driver_factory: Callable[[], Any] = sync_playwright,
    ) -> None:
        self._headless = headless
        self._driver_factory = driver_factory
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise BrowserUnavailableError("Browser session is not started.")
        return self._browser

    def start(self) -> "BrowserSession":
        if self._browser is not None:
            return self
        try:
            self._playwright = self._driver_factory().start()
            self._browser = self._playwright.chromium.launch(
                headless=self._headless,
                args=CHROMIUM_ARGS,
            )
        except PlaywrightError as exc:
            self.close()
            raise BrowserUnavailableError(f"Failed to launch Chromium: {exc}") from exc
        log_event(logger, logging.INFO, "browser_started", headless=self._headless)
        return self

    def close(self) -> None:
        browser, self._browser = self._browser, None
        driver, self._playwright = self._playwright, None
        try:
            if browser is not None:
                browser.close()
        except PlaywrightError as exc:
            log_event(logger, logging.WARNING, "browser_close_failed", error=str(exc))
        finally:
            if driver is not None:
                driver.stop()

    def __enter__(self) -> "BrowserSession":
        return self.start()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class HeadlessEngine:
    """
    Opens stealth-configured pages and extracts data from script-rendered
    sites.
    """

    def __init__(
        self,
        *,
        session: BrowserSession,
        settings: HeadlessSettings,
        storage: ScrapedRowStorage | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session
        self._settings = settings
        self._storage = storage
        self.rng = rng or random.Random()
        self.sleep = sleep

    @property
    def settings(self) -> HeadlessSettings:
        return self._settings

    @contextmanager
    def open_page(self, url: str) -> Iterator[Page]:
        """
        Yield a loaded, stealth-patched page. The page and its browser
        context are closed on exit.
        """

        context = self._session.browser.new_context(
            viewport={
                "width": self._settings.viewport_width,
                "height": self._settings.viewport_height,
            },
            user_agent=self._settings.user_agent,
            locale=self._settings.locale,
        )
        try:
            page = context.new_page()
            page.set_default_timeout(self._settings.script_timeout_ms)
            try:
                page.goto(
                    url,
                    wait_until="load",
                    timeout=self._settings.navigation_timeout_ms,
                )
            except PlaywrightTimeoutError as exc:
                raise NavigationError(f"Navigation to {url} timed out: {exc}") from exc
            except PlaywrightError as exc:
                raise NavigationError(f"Navigation to {url} failed: {exc}") from exc

            apply_stealth(page)
            humanize(page, rng=self.rng, sleep=self.sleep)
            try:
                yield page
            finally:
                page.close()
        finally:
            context.close()

    def scrape_target(self, target: Any) -> ScrapeStats:
        """
        Run the generic extraction script on the target's base URL.

        Exactly one page is attempted. Failures carry the stats on the
        raised ScrapeError.
        """

        started = time.monotonic()
        stats = ScrapeStats(total_pages=1)
        try:
            with self.open_page(target.base_url) as page:
                try:
                    data = page.evaluate(PAGE_EXTRACTION_SCRIPT)
                except PlaywrightError as exc:
                    raise ExtractionError(f"Extraction script failed on {target.base_url}: {exc}") from exc
                if not isinstance(data, dict):
                    raise ExtractionError(f"Unexpected extraction result type {type(data).__name__}")
        except ScrapeError as exc:
            stats.error_pages = 1
            stats.errors.append(str(exc))
            stats.duration_seconds = time.monotonic() - started
            exc.stats = stats
            log_event(
                logger,
                logging.ERROR,
                "headless_scrape_failed",
                target=target.name,
                page_url=target.base_url,
                **error_fields(exc),
            )
            raise

        raw = {key: value for key, value in data.items() if value}
        if raw:
            stats.success_pages = 1
            text_fields = {key: value for key, value in raw.items() if isinstance(value, str)}
            normalized: dict[str, Any] = normalize_fields(text_fields)
            for key, value in raw.items():
                normalized.setdefault(key, value)
            if self._storage is not None:
                inserted = self._storage.store_if_new(
                    target_id=target.id,
                    base_url=target.base_url,
                    url=target.base_url,
                    row_type=target.name,
                    raw=raw,
                    normalized=normalized,
                )
                stats.data_extracted = int(inserted)

        stats.duration_seconds = time.monotonic() - started
        log_event(
            logger,
            logging.INFO,
            "headless_scrape_completed",
            target=target.name,
            fields=sorted(raw),
            data_extracted=stats.data_extracted,
        )
        return stats
