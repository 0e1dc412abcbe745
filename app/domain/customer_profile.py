"""
app/domain/customer_profile.py

Form-filling input assembled from a customer and their quote request.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CustomerProfile:
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    tckn: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    address: str | None = None
    city: str | None = None
    district: str | None = None
    postal_code: str | None = None
    vehicle_brand: str | None = None
    vehicle_model: str | None = None
    vehicle_year: int | None = None
    vehicle_plate: str | None = None
    engine_number: str | None = None
    chassis_number: str | None = None

    def form_value(self, field_name: str) -> str | None:
        """Value typed into the form field `field_name`, or None to skip it."""

        value = getattr(self, field_name, None)
        if value is None:
            return None
        text = str(value).strip()
        return text or None
