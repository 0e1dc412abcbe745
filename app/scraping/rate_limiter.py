"""
Domain-aware politeness limiter.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from urllib.parse import urlparse


def domain_of(url: str) -> str:
    parsed = urlparse(url)
    return (parsed.netloc or parsed.path).lower()


class DomainRateLimiter:
    """
    Enforces a minimum gap between requests per domain and keeps at most
    one request in flight per domain.

    The gap for a request is the largest of the limiter default, the
    target's own rate_limit_ms and any robots.txt crawl-delay.
    """

    def __init__(
        self,
        *,
        default_delay_ms: int,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_delay_ms = max(0, default_delay_ms)
        self._sleep = sleep
        self._clock = clock
        self._last_request_by_domain: dict[str, float] = {}
        self._domain_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def min_interval_seconds(
        self,
        *,
        rate_limit_ms: int | None = None,
        crawl_delay_seconds: float | None = None,
    ) -> float:
        interval = max(self._default_delay_ms, rate_limit_ms or 0) / 1000.0
        if crawl_delay_seconds is not None:
            interval = max(interval, max(0.0, crawl_delay_seconds))
        return interval

    @contextmanager
    def slot(
        self,
        *,
        url: str,
        rate_limit_ms: int | None = None,
        crawl_delay_seconds: float | None = None,
    ) -> Iterator[None]:
        """
        Hold the domain for one request, sleeping first if the previous
        request to the same domain was too recent.
        """

        domain = domain_of(url)
        if not domain:
            yield
            return

        min_interval = self.min_interval_seconds(
            rate_limit_ms=rate_limit_ms,
            crawl_delay_seconds=crawl_delay_seconds,
        )
        lock = self._lock_for(domain)
        with lock:
            last_time = self._last_request_by_domain.get(domain)
            if last_time is not None:
                wait_seconds = min_interval - (self._clock() - last_time)
                if wait_seconds > 0:
                    self._sleep(wait_seconds)
            try:
                yield
            finally:
                self._last_request_by_domain[domain] = self._clock()

    def _lock_for(self, domain: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._domain_locks.get(domain)
            if lock is None:
                lock = threading.Lock()
                self._domain_locks[domain] = lock
            return lock
