"""
app/api/routers/quotes.py

Quote request, offer comparison and approval endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import to_http_error
from app.schemas.quotes import (
    PolicyResponse,
    QuoteCreateRequest,
    QuoteResponse,
    ScrapedQuoteResponse,
)
from app.services.quote_workflow_service import QuoteWorkflowService, get_quote_workflow_service
from db.repositories.errors import RepositoryError
from db.session import get_db

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def create_quote(
    request: QuoteCreateRequest,
    db: Session = Depends(get_db),
    service: QuoteWorkflowService = Depends(get_quote_workflow_service),
) -> QuoteResponse:
    """
    Persist a pending quote and enqueue its scrape on the critical queue.
    """

    try:
        quote = service.create_quote(
            db=db,
            customer_id=request.customer_id,
            product_id=request.product_id,
            agent_id=request.agent_id,
            coverage_type=request.coverage_type,
            start_date=request.start_date,
            end_date=request.end_date,
            vehicle=request.vehicle.model_dump(),
            additional_info=request.additional_info,
            valid_until=request.valid_until,
        )
    except RepositoryError as exc:
        raise to_http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteResponse)
def get_quote(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: QuoteWorkflowService = Depends(get_quote_workflow_service),
) -> QuoteResponse:
    try:
        quote = service.get_quote(db=db, quote_id=quote_id)
    except RepositoryError as exc:
        raise to_http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.get("/{quote_id}/scraped", response_model=list[ScrapedQuoteResponse])
def list_scraped_quotes(
    quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: QuoteWorkflowService = Depends(get_quote_workflow_service),
) -> list[ScrapedQuoteResponse]:
    """
    Offers for a quote, cheapest first.
    """

    try:
        offers = service.list_offers(db=db, quote_id=quote_id)
    except RepositoryError as exc:
        raise to_http_error(exc) from exc
    return [ScrapedQuoteResponse.model_validate(offer) for offer in offers]


@router.post("/{quote_id}/approve/{scraped_quote_id}", response_model=PolicyResponse)
def approve_quote(
    quote_id: uuid.UUID,
    scraped_quote_id: uuid.UUID,
    db: Session = Depends(get_db),
    service: QuoteWorkflowService = Depends(get_quote_workflow_service),
) -> PolicyResponse:
    try:
        policy = service.approve(db=db, quote_id=quote_id, scraped_quote_id=scraped_quote_id)
    except RepositoryError as exc:
        raise to_http_error(exc) from exc
    return PolicyResponse.model_validate(policy)
