"""
Polite static HTML collector for targets that do not need a browser.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import urldefrag, urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from app.config import ScraperSettings
from app.scraping.errors import NavigationError
from app.scraping.logging_utils import error_fields, log_event
from app.scraping.normalization import normalize_fields
from app.scraping.rate_limiter import DomainRateLimiter
from app.scraping.robots import RobotsPolicyManager
from app.scraping.selectors import resolve_selectors
from app.scraping.storage import ScrapedRowStorage
from app.scraping.types import ExtractedPage, ScrapeStats

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class StaticTarget(Protocol):
    id: Any
    name: str
    base_url: str
    rate_limit_ms: int
    headers_json: dict[str, Any] | None
    cookies_json: dict[str, Any] | None
    selector_json: dict[str, Any] | None


class StaticCollector:
    """
    Fetches a target's pages over plain HTTP, extracts one text value per
    configured field and stores content-addressed rows.

    Traversal stays on the seed page's host and walks same-host links
    breadth-first until max_pages pages have been attempted.
    """

    def __init__(
        self,
        *,
        settings: ScraperSettings,
        storage: ScrapedRowStorage,
        session: requests.Session | None = None,
        rate_limiter: DomainRateLimiter | None = None,
        robots_policy: RobotsPolicyManager | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._session = session or requests.Session()
        self._sleep = sleep
        self._rate_limiter = rate_limiter or DomainRateLimiter(
            default_delay_ms=settings.default_delay_ms,
            sleep=sleep,
        )
        self._robots_policy = robots_policy
        if self._robots_policy is None and settings.respect_robots:
            self._robots_policy = RobotsPolicyManager(
                session=self._session,
                user_agent=settings.user_agent,
                timeout_seconds=min(settings.timeout_seconds, 10.0),
            )

    def collect(self, target: StaticTarget, *, max_pages: int | None = None) -> ScrapeStats:
        """
        Scrape one target and return run statistics.

        Raises NavigationError when the seed page cannot be fetched. Later
        page failures are counted in the stats and do not fail the run.
        """

        started = time.monotonic()
        page_limit = max(1, max_pages or self._settings.max_pages)
        selectors = resolve_selectors(name=target.name, selector_json=target.selector_json)
        headers = self._build_headers(target)
        cookies = self._build_cookies(target)
        host = urlparse(target.base_url).netloc.lower()

        stats = ScrapeStats()
        frontier: deque[str] = deque([target.base_url])
        seen: set[str] = {target.base_url}

        while frontier and stats.total_pages < page_limit:
            url = frontier.popleft()
            is_seed = stats.total_pages == 0
            stats.total_pages += 1

            crawl_delay: float | None = None
            if self._robots_policy is not None:
                decision = self._robots_policy.check(url)
                if not decision.allowed:
                    stats.error_pages += 1
                    stats.errors.append(f"blocked by robots.txt url={url}")
                    log_event(
                        logger,
                        logging.WARNING,
                        "page_blocked_by_robots",
                        target=target.name,
                        page_url=url,
                    )
                    continue
                crawl_delay = decision.crawl_delay_seconds

            try:
                with self._rate_limiter.slot(
                    url=url,
                    rate_limit_ms=target.rate_limit_ms,
                    crawl_delay_seconds=crawl_delay,
                ):
                    response = self._request_with_retry(url, headers=headers, cookies=cookies)
            except (requests.RequestException, NavigationError) as exc:
                if is_seed:
                    log_event(
                        logger,
                        logging.ERROR,
                        "seed_page_fetch_failed",
                        target=target.name,
                        page_url=url,
                        **error_fields(exc),
                    )
                    if isinstance(exc, NavigationError):
                        raise
                    raise NavigationError(f"Failed to fetch seed page {url}: {exc}") from exc
                stats.error_pages += 1
                stats.errors.append(f"url={url} error={exc}")
                log_event(
                    logger,
                    logging.WARNING,
                    "page_fetch_failed",
                    target=target.name,
                    page_url=url,
                    **error_fields(exc),
                )
                continue

            try:
                page = self.extract_page(url=url, html=response.text, selectors=selectors)
            except SelectorSyntaxError as exc:
                stats.error_pages += 1
                stats.errors.append(f"url={url} error={exc}")
                log_event(
                    logger,
                    logging.WARNING,
                    "page_extraction_failed",
                    target=target.name,
                    page_url=url,
                    **error_fields(exc),
                )
                continue

            if page.raw:
                inserted = self._storage.store_if_new(
                    target_id=target.id,
                    base_url=target.base_url,
                    url=url,
                    row_type=target.name,
                    raw=page.raw,
                    normalized=page.normalized,
                )
                stats.success_pages += 1
                stats.data_extracted += int(inserted)
                log_event(
                    logger,
                    logging.INFO,
                    "page_scraped",
                    target=target.name,
                    page_url=url,
                    fields=sorted(page.raw),
                    duplicate=not inserted,
                )
            else:
                log_event(logger, logging.INFO, "page_without_data", target=target.name, page_url=url)

            for link in page.links:
                if len(seen) >= page_limit:
                    break
                if urlparse(link).netloc.lower() == host and link not in seen:
                    seen.add(link)
                    frontier.append(link)

        stats.duration_seconds = time.monotonic() - started
        return stats

    @staticmethod
    def extract_page(*, url: str, html: str, selectors: dict[str, str]) -> ExtractedPage:
        """
        Take the first match of every selector. Empty values are dropped.
        """

        soup = BeautifulSoup(html, "html.parser")
        raw: dict[str, str] = {}
        for field, selector in selectors.items():
            element = soup.select_one(selector)
            if element is None:
                continue
            value = element.get_text(" ", strip=True)
            if not value:
                value = str(element.get("href") or "").strip()
            if value:
                raw[field] = value

        links: list[str] = []
        for anchor in soup.select("a[href]"):
            absolute, _ = urldefrag(urljoin(url, str(anchor.get("href"))))
            if urlparse(absolute).scheme in {"http", "https"}:
                links.append(absolute)

        return ExtractedPage(url=url, raw=raw, normalized=normalize_fields(raw), links=links)

    def _build_headers(self, target: StaticTarget) -> dict[str, str]:
        headers = {"User-Agent": self._settings.user_agent}
        for key, value in (target.headers_json or {}).items():
            headers[str(key)] = str(value)
        return headers

    @staticmethod
    def _build_cookies(target: StaticTarget) -> dict[str, str]:
        return {str(key): str(value) for key, value in (target.cookies_json or {}).items()}

    def _request_with_retry(
        self,
        url: str,
        *,
        headers: dict[str, str],
        cookies: dict[str, str],
    ) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self._settings.max_retries + 1):
            try:
                response = self._session.get(
                    url,
                    headers=headers,
                    cookies=cookies,
                    timeout=self._settings.timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise

            if attempt >= self._settings.max_retries:
                break

            backoff_seconds = self._settings.backoff_initial_seconds * (
                self._settings.backoff_multiplier**attempt
            )
            self._sleep(backoff_seconds)

        raise NavigationError(f"Failed to fetch {url} after retries: {last_error}")
