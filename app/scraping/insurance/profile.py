"""
Build the form-filling profile for a quote request.
"""

from __future__ import annotations

import logging

from app.domain.customer_profile import CustomerProfile
from app.scraping.logging_utils import log_event
from app.scraping.normalization import normalize_phone, validate_tckn
from db.models.customer import Customer
from db.models.quote import Quote

logger = logging.getLogger(__name__)


def build_customer_profile(customer: Customer, quote: Quote) -> CustomerProfile:
    """
    Combine customer and vehicle details. An invalid national id is left
    out of the profile so it is never typed into a competitor form.
    """

    tckn = (customer.tckn or "").strip() or None
    if tckn is not None and not validate_tckn(tckn):
        log_event(
            logger,
            logging.WARNING,
            "customer_tckn_invalid",
            customer_id=customer.id,
            quote_id=quote.id,
        )
        tckn = None

    phone = normalize_phone(customer.phone) if customer.phone else None

    return CustomerProfile(
        first_name=customer.first_name,
        last_name=customer.last_name,
        email=customer.email,
        phone=phone or None,
        tckn=tckn,
        birth_date=customer.birth_date.isoformat() if customer.birth_date else None,
        gender=customer.gender,
        address=customer.address,
        city=customer.city,
        district=customer.district,
        postal_code=customer.postal_code,
        vehicle_brand=quote.vehicle_brand,
        vehicle_model=quote.vehicle_model,
        vehicle_year=quote.vehicle_year,
        vehicle_plate=quote.vehicle_plate,
        engine_number=quote.engine_number,
        chassis_number=quote.chassis_number,
    )
