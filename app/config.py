"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ScraperSettings:
    """
    Static collector politeness and HTTP behaviour.
    """

    default_delay_ms: int = 1250
    max_retries: int = 5
    respect_robots: bool = True
    timeout_seconds: float = 30.0
    backoff_initial_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_pages: int = 1
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class HeadlessSettings:
    """
    Browser automation settings.
    """

    enabled: bool = True
    navigation_timeout_ms: int = 30000
    script_timeout_ms: int = 10000
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "tr-TR"
    user_agent: str = DEFAULT_USER_AGENT
    typing_delay_min_ms: int = 50
    typing_delay_max_ms: int = 150


@dataclass(frozen=True)
class OrchestratorSettings:
    """
    Task queue worker pool, priority lanes and retry policy.
    """

    concurrency: int = 10
    queue_weights: dict[str, int] = field(
        default_factory=lambda: {"critical": 6, "default": 3, "low": 1}
    )
    max_retries: int = 3
    backoff_initial_seconds: float = 5.0
    backoff_multiplier: float = 2.0
    backoff_max_seconds: float = 300.0
    poll_interval_seconds: float = 0.5
    scrape_all_interval_hours: int = 24
    cleanup_interval_days: int = 7


@dataclass(frozen=True)
class QuoteScrapingSettings:
    """
    Insurance quote fetching and offer pricing constants.
    """

    simulation_fallback: bool = True
    base_premium: str = "1500"
    discount_rate: str = "0.10"
    commission_rate: str = "0.12"
    coverage_amount: str = "50000"
    currency: str = "TRY"
    inter_target_delay_ms: int = 1000


@dataclass(frozen=True)
class RetentionSettings:
    cleanup_days_old: int = 30


def _parse_queue_weights(raw: str, default: dict[str, int]) -> dict[str, int]:
    """
    Parse `critical=6,default=3,low=1` into a weight map.

    Malformed entries are ignored; unknown lanes are kept as configured.
    """

    weights = dict(default)
    for chunk in raw.split(","):
        if "=" not in chunk:
            continue
        name, value = chunk.split("=", 1)
        name = name.strip()
        try:
            weight = int(value.strip())
        except ValueError:
            continue
        if name and weight > 0:
            weights[name] = weight
    return weights


@lru_cache(maxsize=1)
def get_scraper_settings() -> ScraperSettings:
    """
    Return cached static collector settings from environment variables.
    """

    return ScraperSettings(
        default_delay_ms=max(0, _get_int_env("SCRAPER_DEFAULT_DELAY_MS", 1250)),
        max_retries=max(0, _get_int_env("SCRAPER_MAX_RETRY", 5)),
        respect_robots=_get_bool_env("SCRAPER_RESPECT_ROBOTS", True),
        timeout_seconds=max(1.0, _get_float_env("SCRAPER_TIMEOUT_SECONDS", 30.0)),
        backoff_initial_seconds=max(0.1, _get_float_env("SCRAPER_BACKOFF_INITIAL_SECONDS", 1.0)),
        backoff_multiplier=max(1.0, _get_float_env("SCRAPER_BACKOFF_MULTIPLIER", 2.0)),
        max_pages=max(1, _get_int_env("SCRAPER_MAX_PAGES", 1)),
        user_agent=_get_str_env("SCRAPER_USER_AGENT", DEFAULT_USER_AGENT),
    )


@lru_cache(maxsize=1)
def get_headless_settings() -> HeadlessSettings:
    """
    Return cached browser automation settings.
    """

    typing_min = max(0, _get_int_env("HEADLESS_TYPING_DELAY_MIN_MS", 50))
    typing_max = max(typing_min, _get_int_env("HEADLESS_TYPING_DELAY_MAX_MS", 150))
    return HeadlessSettings(
        enabled=_get_bool_env("HEADLESS_ENABLED", True),
        navigation_timeout_ms=max(1000, _get_int_env("HEADLESS_NAVIGATION_TIMEOUT_MS", 30000)),
        script_timeout_ms=max(500, _get_int_env("HEADLESS_SCRIPT_TIMEOUT_MS", 10000)),
        viewport_width=max(320, _get_int_env("HEADLESS_VIEWPORT_WIDTH", 1920)),
        viewport_height=max(240, _get_int_env("HEADLESS_VIEWPORT_HEIGHT", 1080)),
        locale=_get_str_env("HEADLESS_LOCALE", "tr-TR"),
        user_agent=_get_str_env("HEADLESS_USER_AGENT", DEFAULT_USER_AGENT),
        typing_delay_min_ms=typing_min,
        typing_delay_max_ms=typing_max,
    )


@lru_cache(maxsize=1)
def get_orchestrator_settings() -> OrchestratorSettings:
    """
    Return cached task orchestrator settings.
    """

    defaults = OrchestratorSettings()
    return OrchestratorSettings(
        concurrency=max(1, _get_int_env("ORCHESTRATOR_CONCURRENCY", 10)),
        queue_weights=_parse_queue_weights(
            _get_str_env("ORCHESTRATOR_QUEUE_WEIGHTS", ""),
            defaults.queue_weights,
        ),
        max_retries=max(0, _get_int_env("ORCHESTRATOR_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.0, _get_float_env("ORCHESTRATOR_BACKOFF_INITIAL_SECONDS", 5.0)),
        backoff_multiplier=max(1.0, _get_float_env("ORCHESTRATOR_BACKOFF_MULTIPLIER", 2.0)),
        backoff_max_seconds=max(0.0, _get_float_env("ORCHESTRATOR_BACKOFF_MAX_SECONDS", 300.0)),
        poll_interval_seconds=max(0.05, _get_float_env("ORCHESTRATOR_POLL_INTERVAL_SECONDS", 0.5)),
        scrape_all_interval_hours=max(1, _get_int_env("SCHEDULE_SCRAPE_ALL_HOURS", 24)),
        cleanup_interval_days=max(1, _get_int_env("SCHEDULE_CLEANUP_DAYS", 7)),
    )


@lru_cache(maxsize=1)
def get_quote_scraping_settings() -> QuoteScrapingSettings:
    """
    Return cached quote fetching settings.
    """

    return QuoteScrapingSettings(
        simulation_fallback=_get_bool_env("QUOTE_SIMULATION_FALLBACK", True),
        base_premium=_get_str_env("QUOTE_BASE_PREMIUM", "1500"),
        discount_rate=_get_str_env("QUOTE_DISCOUNT_RATE", "0.10"),
        commission_rate=_get_str_env("QUOTE_COMMISSION_RATE", "0.12"),
        coverage_amount=_get_str_env("QUOTE_COVERAGE_AMOUNT", "50000"),
        currency=_get_str_env("QUOTE_CURRENCY", "TRY"),
        inter_target_delay_ms=max(0, _get_int_env("QUOTE_INTER_TARGET_DELAY_MS", 1000)),
    )


@lru_cache(maxsize=1)
def get_retention_settings() -> RetentionSettings:
    return RetentionSettings(
        cleanup_days_old=max(1, _get_int_env("CLEANUP_DAYS_OLD", 30)),
    )
