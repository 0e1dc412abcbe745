"""
robots.txt policy helper for collector compliance.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse
from urllib.robotparser import RobotFileParser

import requests

from app.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RobotsDecision:
    allowed: bool
    crawl_delay_seconds: float | None = None


class RobotsPolicyManager:
    """
    Caches robots.txt rules per origin.

    An unreachable or missing robots.txt allows crawling. A 401 or 403 on
    robots.txt blocks the whole origin.
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        user_agent: str,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._session = session
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds
        self._cache: dict[str, RobotFileParser] = {}
        self._lock = threading.Lock()

    def check(self, url: str) -> RobotsDecision:
        parser = self._get_parser(url)
        allowed = parser.can_fetch(self._user_agent, url)
        delay = parser.crawl_delay(self._user_agent)
        if delay is None:
            delay = parser.crawl_delay("*")
        return RobotsDecision(
            allowed=allowed,
            crawl_delay_seconds=float(delay) if delay is not None else None,
        )

    def _get_parser(self, url: str) -> RobotFileParser:
        origin = self._origin(url)
        with self._lock:
            cached = self._cache.get(origin)
        if cached is not None:
            return cached

        parser = RobotFileParser()
        robots_url = urljoin(origin, "/robots.txt")
        try:
            response = self._session.get(
                robots_url,
                timeout=self._timeout_seconds,
                headers={"User-Agent": self._user_agent},
            )
            if response.ok and response.text:
                parser.set_url(robots_url)
                parser.parse(response.text.splitlines())
                log_event(logger, logging.DEBUG, "robots_loaded", origin=origin)
            elif response.status_code in (401, 403):
                parser.parse(["User-agent: *", "Disallow: /"])
                log_event(
                    logger,
                    logging.WARNING,
                    "robots_forbidden",
                    origin=origin,
                    status_code=response.status_code,
                )
            else:
                parser.parse(["User-agent: *", "Allow: /"])
                log_event(
                    logger,
                    logging.INFO,
                    "robots_unavailable",
                    origin=origin,
                    status_code=response.status_code,
                )
        except requests.RequestException as exc:
            parser.parse(["User-agent: *", "Allow: /"])
            log_event(
                logger,
                logging.WARNING,
                "robots_fetch_failed",
                origin=origin,
                error=str(exc),
            )

        with self._lock:
            self._cache[origin] = parser
        return parser

    @staticmethod
    def _origin(url: str) -> str:
        parsed = urlparse(url)
        scheme = parsed.scheme or "https"
        return f"{scheme}://{parsed.netloc}"
