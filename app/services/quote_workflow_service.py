"""
app/services/quote_workflow_service.py

Quote request intake, offer comparison and approval into a policy.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.domain.quote_lifecycle import ensure_transition
from app.jobs.orchestrator import TaskOrchestrator
from app.jobs.types import QUEUE_CRITICAL, QUOTE_SCRAPE
from app.scraping.logging_utils import log_event
from db.models.policy import Policy
from db.models.quote import Quote, QuoteStatus, ScrapedQuote, ScrapedQuoteStatus
from db.repositories.customer_repository import CustomerRepository
from db.repositories.errors import RecordNotFoundError, RepositoryError
from db.repositories.quote_repository import QuoteRepository

logger = logging.getLogger(__name__)


class OfferNotApprovableError(RepositoryError):
    """Raised when the chosen offer is an error row and carries no price."""


class QuoteWorkflowService:
    """
    Persists quote requests and hands them to the quote:scrape job.

    The orchestrator is resolved lazily so the service can be built in
    processes that never enqueue.
    """

    def __init__(self, orchestrator: TaskOrchestrator | None = None) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> TaskOrchestrator:
        if self._orchestrator is None:
            from app.jobs.worker import get_task_orchestrator

            self._orchestrator = get_task_orchestrator()
        return self._orchestrator

    def create_quote(
        self,
        *,
        db: Session,
        customer_id: uuid.UUID,
        product_id: uuid.UUID,
        agent_id: uuid.UUID,
        coverage_type: str,
        start_date: date,
        end_date: date,
        vehicle: dict[str, Any] | None = None,
        additional_info: str | None = None,
        valid_until: datetime | None = None,
    ) -> Quote:
        CustomerRepository(db).ensure_exists(customer_id)
        quote = QuoteRepository(db).create_quote(
            customer_id=customer_id,
            product_id=product_id,
            agent_id=agent_id,
            coverage_type=coverage_type,
            start_date=start_date,
            end_date=end_date,
            vehicle=vehicle,
            additional_info=additional_info,
            valid_until=valid_until,
        )
        db.commit()

        job = self.orchestrator.enqueue(QUOTE_SCRAPE, {"quote_id": str(quote.id)}, QUEUE_CRITICAL)
        log_event(
            logger,
            logging.INFO,
            "quote_created",
            quote_id=quote.id,
            customer_id=customer_id,
            job_id=job.id,
        )
        return quote

    def get_quote(self, *, db: Session, quote_id: uuid.UUID) -> Quote:
        return QuoteRepository(db).get_quote_required(quote_id)

    def list_offers(self, *, db: Session, quote_id: uuid.UUID) -> list[ScrapedQuote]:
        """Offers cheapest first; error rows without a price sort last."""

        repository = QuoteRepository(db)
        repository.get_quote_required(quote_id)
        return repository.list_scraped_quotes(quote_id)

    def approve(self, *, db: Session, quote_id: uuid.UUID, scraped_quote_id: uuid.UUID) -> Policy:
        """
        Issue an active policy from one offer and move the quote to approved.

        The quote must be completed and the offer must be a priced
        (`scraped`) offer belonging to it.
        """

        repository = QuoteRepository(db)
        quote = repository.get_quote_required(quote_id)
        offer = repository.get_scraped_quote(scraped_quote_id)
        if offer is None or offer.quote_id != quote.id:
            raise RecordNotFoundError(f"Scraped quote {scraped_quote_id} not found for quote {quote_id}")
        if offer.status != ScrapedQuoteStatus.SCRAPED or offer.final_price is None:
            raise OfferNotApprovableError(f"Scraped quote {scraped_quote_id} has no approvable price.")

        approved_status = ensure_transition(quote.status, QuoteStatus.APPROVED)
        policy = repository.create_policy(
            customer_id=quote.customer_id,
            product_id=quote.product_id,
            agent_id=quote.agent_id,
            company_name=offer.company_name,
            premium=offer.final_price,
            start_date=quote.start_date,
            end_date=quote.end_date,
            quote_id=quote.id,
            scraped_quote_id=offer.id,
        )
        quote.status = approved_status
        db.commit()

        log_event(
            logger,
            logging.INFO,
            "quote_approved",
            quote_id=quote.id,
            scraped_quote_id=offer.id,
            policy_number=policy.policy_number,
            premium=policy.premium,
        )
        return policy


@lru_cache(maxsize=1)
def get_quote_workflow_service() -> QuoteWorkflowService:
    """
    Build and cache the quote workflow service.
    """

    return QuoteWorkflowService()
