"""
tests/conftest.py

Shared fixtures: a file-backed SQLite database built from Base.metadata,
row factories, a fake requests session and fake Playwright objects.
"""

from __future__ import annotations

import random
import uuid
from datetime import date
from typing import Any

import pytest
import requests
from playwright.sync_api import Error as PlaywrightError
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from app.config import HeadlessSettings, QuoteScrapingSettings, ScraperSettings
from app.scraping.normalization import content_hash
from app.scraping.storage import ScrapedRowStorage
from db.base import Base
from db.models.customer import Customer
from db.models.quote import Quote, QuoteStatus
from db.models.scraper_target import ScraperTarget

VALID_TCKN = "10000000146"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'pipeline.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA journal_mode=WAL")

    @event.listens_for(engine, "begin")
    def _on_begin(connection):  # noqa: ANN001
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


def make_target(session: Session, name: str, **overrides: Any) -> ScraperTarget:
    values: dict[str, Any] = {
        "name": name,
        "base_url": f"https://{name.lower().replace(' ', '-')}.example.com/",
        "logo_url": f"https://cdn.example.com/{name.lower().replace(' ', '-')}.png",
        "enabled": True,
        "is_active": True,
        "use_headless": False,
        "rate_limit_ms": 0,
    }
    values.update(overrides)
    target = ScraperTarget(**values)
    session.add(target)
    session.flush()
    return target


def make_customer(session: Session, **overrides: Any) -> Customer:
    values: dict[str, Any] = {
        "tckn": VALID_TCKN,
        "first_name": "Ayşe",
        "last_name": "Yılmaz",
        "email": "ayse@example.com",
        "phone": "0 (532) 123 45 67",
        "birth_date": date(1988, 4, 12),
        "city": "İstanbul",
        "district": "Kadıköy",
    }
    values.update(overrides)
    customer = Customer(**values)
    session.add(customer)
    session.flush()
    return customer


def make_quote(session: Session, customer: Customer, **overrides: Any) -> Quote:
    values: dict[str, Any] = {
        "customer_id": customer.id,
        "product_id": uuid.uuid4(),
        "agent_id": uuid.uuid4(),
        "coverage_type": "kasko",
        "start_date": date(2026, 11, 1),
        "end_date": date(2027, 11, 1),
        "vehicle_brand": "Renault",
        "vehicle_model": "Clio",
        "vehicle_year": 2021,
        "vehicle_plate": "34 ABC 123",
        "status": QuoteStatus.PENDING,
    }
    values.update(overrides)
    quote = Quote(**values)
    session.add(quote)
    session.flush()
    return quote


# ---------------------------------------------------------------------------
# Settings and helpers
# ---------------------------------------------------------------------------


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def scraper_settings() -> ScraperSettings:
    return ScraperSettings(default_delay_ms=0, max_retries=2, respect_robots=True, max_pages=3)


@pytest.fixture()
def headless_settings() -> HeadlessSettings:
    return HeadlessSettings(enabled=True, typing_delay_min_ms=0, typing_delay_max_ms=0)


@pytest.fixture()
def quote_settings() -> QuoteScrapingSettings:
    return QuoteScrapingSettings(inter_target_delay_ms=0)


class InMemoryRowStorage(ScrapedRowStorage):
    """Content-addressed storage double keyed by the production hash."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}

    def store_if_new(self, *, target_id, base_url, url, row_type, raw, normalized) -> bool:  # noqa: ANN001
        key = content_hash(base_url, raw)
        if key in self.rows:
            return False
        self.rows[key] = {
            "target_id": target_id,
            "url": url,
            "row_type": row_type,
            "raw": raw,
            "normalized": normalized,
        }
        return True


@pytest.fixture()
def row_storage() -> InMemoryRowStorage:
    return InMemoryRowStorage()


# ---------------------------------------------------------------------------
# Fake HTTP
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}", response=self)


class FakeHttpSession:
    """
    Serves canned responses by URL. A list value is consumed one response
    per request; an exception instance is raised instead of returned.
    Unknown robots.txt URLs answer 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((url, kwargs))
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, "")
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, str):
            return FakeResponse(200, route)
        return route

    def urls(self) -> list[str]:
        return [url for url, _ in self.requests]


# ---------------------------------------------------------------------------
# Fake Playwright
# ---------------------------------------------------------------------------


class FakeMouse:
    def __init__(self) -> None:
        self.actions: list[tuple[str, int, int]] = []

    def move(self, x: int, y: int) -> None:
        self.actions.append(("move", x, y))

    def wheel(self, dx: int, dy: int) -> None:
        self.actions.append(("wheel", dx, dy))


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self._page = page
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    def count(self) -> int:
        return 1 if self._page.has(self.selector) else 0

    def evaluate(self, expression: str) -> str:
        return self._page.tags.get(self.selector, "input")

    def fill(self, value: str) -> None:
        self._page.typed[self.selector] = value

    def press_sequentially(self, text: str) -> None:
        self._page.typed[self.selector] = self._page.typed.get(self.selector, "") + text

    def select_option(self, value: str) -> None:
        self._page.selected[self.selector] = value

    def click(self) -> None:
        self._page.clicked.append(self.selector)


class FakePage:
    """
    Page double. `present` limits which selectors exist (None means all);
    `evaluate_results` maps a script string to its return value or to an
    exception to raise.
    """

    def __init__(
        self,
        *,
        present: set[str] | None = None,
        tags: dict[str, str] | None = None,
        evaluate_results: dict[str, Any] | None = None,
        goto_error: Exception | None = None,
    ) -> None:
        self.present = present
        self.tags = dict(tags or {})
        self.evaluate_results = dict(evaluate_results or {})
        self.goto_error = goto_error
        self.url = "about:blank"
        self.mouse = FakeMouse()
        self.typed: dict[str, str] = {}
        self.selected: dict[str, str] = {}
        self.clicked: list[str] = []
        self.evaluated: list[tuple[str, Any]] = []
        self.goto_calls: list[dict[str, Any]] = []
        self.load_states: list[str] = []
        self.default_timeout: int | None = None
        self.closed = False

    def has(self, selector: str) -> bool:
        return self.present is None or selector in self.present

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    def goto(self, url: str, **kwargs: Any) -> None:
        self.goto_calls.append({"url": url, **kwargs})
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        result = self.evaluate_results.get(expression)
        if isinstance(result, Exception):
            raise result
        return result

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def wait_for_load_state(self, state: str, **kwargs: Any) -> None:
        self.load_states.append(state)

    def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    def new_page(self) -> FakePage:
        return self.page

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, pages: list[FakePage]) -> None:
        self._pages = list(pages)
        self.contexts: list[FakeContext] = []
        self.context_options: list[dict[str, Any]] = []

    def new_context(self, **kwargs: Any) -> FakeContext:
        self.context_options.append(kwargs)
        page = self._pages.pop(0) if len(self._pages) > 1 else self._pages[0]
        context = FakeContext(page)
        self.contexts.append(context)
        return context


class FakeBrowserSession:
    """Stands in for BrowserSession; `launch_error` simulates a missing browser."""

    def __init__(self, pages: list[FakePage] | None = None, launch_error: Exception | None = None) -> None:
        self.browser = FakeBrowser(pages or [FakePage()])
        self.launch_error = launch_error
        self.started = False
        self.closed = False

    def start(self) -> "FakeBrowserSession":
        if self.launch_error is not None:
            raise self.launch_error
        self.started = True
        return self

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeBrowserSession":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(7)


def playwright_error(message: str) -> PlaywrightError:
    return PlaywrightError(message)
