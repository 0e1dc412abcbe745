"""
Read-only customer lookups used by the quote workflow.
"""

from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from db.models.customer import Customer
from db.repositories.errors import RecordNotFoundError


class CustomerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, customer_id: uuid.UUID) -> Customer | None:
        return self._session.get(Customer, customer_id)

    def ensure_exists(self, customer_id: uuid.UUID) -> Customer:
        customer = self.get(customer_id)
        if customer is None:
            raise RecordNotFoundError(f"Customer not found: {customer_id}")
        return customer
