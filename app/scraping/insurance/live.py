"""
Live quote form automation against a competitor site.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from app.domain.customer_profile import CustomerProfile
from app.domain.offers import QuoteOffer
from app.scraping.errors import ExtractionError, FormAutomationError
from app.scraping.headless.browser import HeadlessEngine
from app.scraping.headless.scripts import QUOTE_EXTRACTION_SCRIPT
from app.scraping.insurance.field_maps import CompanyFieldMap, FieldMapRegistry
from app.scraping.logging_utils import log_event
from app.scraping.normalization import parse_amount
from db.models.quote import OfferSource

logger = logging.getLogger(__name__)

RESULT_KEYS = ("premium", "coverage_amount", "discount", "policy_number", "valid_until", "features")
MAX_FEATURES = 10


class LiveQuoteStrategy:
    """
    Fill the company's quote form like a person would, submit it and read
    the offer off the result page.
    """

    name = OfferSource.LIVE

    def __init__(
        self,
        *,
        engine: HeadlessEngine,
        registry: FieldMapRegistry,
        commission_rate: Decimal = Decimal("0.12"),
        currency: str = "TRY",
    ) -> None:
        self._engine = engine
        self._registry = registry
        self._commission_rate = commission_rate
        self._currency = currency

    def fetch(self, target: Any, profile: CustomerProfile) -> QuoteOffer:
        field_map = self._registry.for_company(target.name)
        with self._engine.open_page(target.base_url) as page:
            filled = self._fill_form(page, field_map, profile, company=target.name)
            self._submit(page, field_map, company=target.name)
            data = self._extract(page, field_map, company=target.name)

        premium = parse_amount(data.get("premium"))
        if premium is None or premium <= 0:
            raise ExtractionError(f"No premium found on result page for '{target.name}'.")

        discount = parse_amount(data.get("discount")) or Decimal("0")
        if discount < 0 or discount >= premium:
            raise ExtractionError(f"Discount {discount} is not below premium {premium} for '{target.name}'.")
        coverage_amount = parse_amount(data.get("coverage_amount"))
        features = [
            item.strip()
            for item in data.get("features") or []
            if isinstance(item, str) and 10 < len(item.strip()) < 100
        ][:MAX_FEATURES]

        log_event(
            logger,
            logging.INFO,
            "live_quote_extracted",
            company=target.name,
            fields_filled=filled,
            premium=premium,
        )
        return QuoteOffer.priced(
            company_name=target.name,
            premium=premium,
            discount=discount,
            commission_rate=self._commission_rate,
            coverage_amount=coverage_amount,
            currency=self._currency,
            valid_until=data.get("valid_until"),
            policy_number=data.get("policy_number"),
            features=features,
            source=OfferSource.LIVE,
        )

    def _fill_form(
        self,
        page: Page,
        field_map: CompanyFieldMap,
        profile: CustomerProfile,
        *,
        company: str,
    ) -> int:
        settings = self._engine.settings
        filled = 0
        for field_name, selector in field_map.fields.items():
            value = profile.form_value(field_name)
            if value is None:
                continue
            try:
                element = page.locator(selector).first
                if element.count() == 0:
                    log_event(logger, logging.INFO, "form_field_missing", company=company, field=field_name)
                    continue
                tag_name = element.evaluate("el => el.tagName.toLowerCase()")
                if tag_name == "select":
                    element.select_option(value)
                else:
                    element.fill("")
                    for char in value:
                        element.press_sequentially(char)
                        self._engine.sleep(
                            self._engine.rng.uniform(
                                settings.typing_delay_min_ms,
                                settings.typing_delay_max_ms,
                            )
                            / 1000.0
                        )
                filled += 1
            except PlaywrightError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "form_field_failed",
                    company=company,
                    field=field_name,
                    error=str(exc),
                )
        self._engine.sleep(self._engine.rng.uniform(0.5, 1.5))
        return filled

    def _submit(self, page: Page, field_map: CompanyFieldMap, *, company: str) -> None:
        for selector in field_map.submit_selectors:
            candidate = page.locator(selector).first
            if candidate.count() == 0:
                continue
            try:
                candidate.click()
            except PlaywrightError as exc:
                raise FormAutomationError(f"Submit control '{selector}' could not be clicked: {exc}") from exc
            break
        else:
            raise FormAutomationError(f"No submit control found for '{company}'.")

        try:
            page.wait_for_load_state(
                "networkidle",
                timeout=self._engine.settings.navigation_timeout_ms,
            )
        except PlaywrightTimeoutError:
            log_event(logger, logging.WARNING, "network_idle_timeout", company=company)

    @staticmethod
    def _extract(page: Page, field_map: CompanyFieldMap, *, company: str) -> dict[str, Any]:
        selectors = {key: list(field_map.result_selectors.get(key, [])) for key in RESULT_KEYS}
        try:
            data = page.evaluate(QUOTE_EXTRACTION_SCRIPT, selectors)
        except PlaywrightError as exc:
            raise ExtractionError(f"Quote extraction script failed for '{company}': {exc}") from exc
        if not isinstance(data, dict):
            raise ExtractionError(f"Unexpected quote extraction result for '{company}'.")
        return data
