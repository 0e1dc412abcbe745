"""
app/schemas/quotes.py

Request and response schemas for the quote workflow endpoints.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VehicleDetails(BaseModel):
    plate: str | None = Field(default=None, max_length=32)
    year: int | None = Field(default=None, ge=1900, le=2100)
    brand: str | None = Field(default=None, max_length=120)
    model: str | None = Field(default=None, max_length=120)
    engine_number: str | None = Field(default=None, max_length=64)
    chassis_number: str | None = Field(default=None, max_length=64)


class QuoteCreateRequest(BaseModel):
    """
    Body of POST /quotes.
    """

    customer_id: uuid.UUID
    product_id: uuid.UUID
    agent_id: uuid.UUID
    coverage_type: str = Field(..., min_length=1, max_length=32)
    start_date: date
    end_date: date
    vehicle: VehicleDetails = Field(default_factory=VehicleDetails)
    additional_info: str | None = None
    valid_until: datetime | None = None

    @model_validator(mode="after")
    def _check_period(self) -> "QuoteCreateRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    product_id: uuid.UUID
    agent_id: uuid.UUID
    coverage_type: str
    start_date: date
    end_date: date
    vehicle_plate: str | None = None
    vehicle_year: int | None = None
    vehicle_brand: str | None = None
    vehicle_model: str | None = None
    engine_number: str | None = None
    chassis_number: str | None = None
    additional_info: str | None = None
    status: str
    valid_until: datetime | None = None


class ScrapedQuoteResponse(BaseModel):
    """
    One competitor offer. Prices are null on error rows.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    quote_id: uuid.UUID
    target_id: uuid.UUID | None = None
    company_name: str
    company_logo: str | None = None
    premium: Decimal | None = None
    coverage_amount: Decimal | None = None
    discount: Decimal
    final_price: Decimal | None = None
    agent_commission: Decimal | None = None
    status: str
    source: str
    error_message: str | None = None
    raw_payload: dict[str, Any] | None = None
    scraped_at: datetime


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    policy_number: str
    customer_id: uuid.UUID
    product_id: uuid.UUID
    agent_id: uuid.UUID
    quote_id: uuid.UUID | None = None
    scraped_quote_id: uuid.UUID | None = None
    company_name: str
    premium: Decimal
    status: str
    start_date: date
    end_date: date
