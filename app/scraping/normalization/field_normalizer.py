"""
Field-level normalization, validation and content addressing for scraped data.
"""

from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

_NON_DIGIT = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")
_AMOUNT_CHARS = re.compile(r"[^\d.,]")

PRICE_FIELDS = {"price", "premium", "cost", "amount"}
DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%d-%m-%Y")

_TURKISH_FOLD = str.maketrans(
    {
        "ı": "i",
        "İ": "i",
        "I": "i",
        "ş": "s",
        "Ş": "s",
        "ğ": "g",
        "Ğ": "g",
        "ü": "u",
        "Ü": "u",
        "ö": "o",
        "Ö": "o",
        "ç": "c",
        "Ç": "c",
        "â": "a",
        "î": "i",
        "û": "u",
    }
)

TURKISH_CITIES = (
    "Adana", "Adıyaman", "Afyonkarahisar", "Ağrı", "Aksaray", "Amasya", "Ankara",
    "Antalya", "Ardahan", "Artvin", "Aydın", "Balıkesir", "Bartın", "Batman",
    "Bayburt", "Bilecik", "Bingöl", "Bitlis", "Bolu", "Burdur", "Bursa",
    "Çanakkale", "Çankırı", "Çorum", "Denizli", "Diyarbakır", "Düzce", "Edirne",
    "Elazığ", "Erzincan", "Erzurum", "Eskişehir", "Gaziantep", "Giresun",
    "Gümüşhane", "Hakkari", "Hatay", "Iğdır", "Isparta", "İstanbul", "İzmir",
    "Kahramanmaraş", "Karabük", "Karaman", "Kars", "Kastamonu", "Kayseri",
    "Kilis", "Kırıkkale", "Kırklareli", "Kırşehir", "Kocaeli", "Konya",
    "Kütahya", "Malatya", "Manisa", "Mardin", "Mersin", "Muğla", "Muş",
    "Nevşehir", "Niğde", "Ordu", "Osmaniye", "Rize", "Sakarya", "Samsun",
    "Şanlıurfa", "Siirt", "Sinop", "Şırnak", "Sivas", "Tekirdağ", "Tokat",
    "Trabzon", "Tunceli", "Uşak", "Van", "Yalova", "Yozgat", "Zonguldak",
)


def fold_turkish(value: str) -> str:
    """Lower-case and strip Turkish diacritics for accent-insensitive matching."""

    return value.strip().translate(_TURKISH_FOLD).lower()


_CITY_LOOKUP = {fold_turkish(city): city for city in TURKISH_CITIES}
_CITY_LOOKUP.update({"icel": "Mersin", "antep": "Gaziantep", "urfa": "Şanlıurfa", "maras": "Kahramanmaraş"})


def canonical_city(value: str | None) -> str | None:
    """
    Return the canonical province name for `value`, or None if unknown.

    "istanbul", "ISTANBUL" and "İstanbul" all map to "İstanbul".
    """

    if not value:
        return None
    return _CITY_LOOKUP.get(fold_turkish(value))


def normalize_phone(value: str | None) -> str:
    """
    Strip non-digits; a 10-digit mobile number starting with 5 gets the
    90 country prefix.
    """

    digits = _NON_DIGIT.sub("", value or "")
    if len(digits) == 10 and digits.startswith("5"):
        digits = "90" + digits
    return digits


def validate_tckn(value: str | None) -> bool:
    """
    National id check: exactly 11 digits and the sum of the first ten
    digits mod 10 equals the eleventh.
    """

    if value is None or len(value) != 11 or not value.isascii() or not value.isdigit():
        return False
    return sum(int(char) for char in value[:10]) % 10 == int(value[10])


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse a money string in either Turkish ("1.425,50 TL") or English
    ("1,425.50") notation.
    """

    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return Decimal(str(value))

    text = _AMOUNT_CHARS.sub("", str(value))
    if not text or not any(char.isdigit() for char in text):
        return None

    has_dot = "." in text
    has_comma = "," in text
    if has_dot and has_comma:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        head, _, tail = text.rpartition(",")
        if text.count(",") == 1 and len(tail) in (1, 2):
            text = f"{head}.{tail}"
        else:
            text = text.replace(",", "")
    elif has_dot:
        head, _, tail = text.rpartition(".")
        if text.count(".") > 1 or len(tail) == 3:
            text = text.replace(".", "")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _normalize_date(value: str) -> str:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return value


def normalize_value(field: str, value: str) -> Any:
    """
    Normalize one extracted text value according to its field name.
    """

    text = _WHITESPACE.sub(" ", value).strip()
    key = field.strip().lower()

    if key in PRICE_FIELDS:
        amount = parse_amount(text)
        return str(amount) if amount is not None else text
    if key == "phone":
        return normalize_phone(text) or text
    if key == "email":
        return text.lower().removeprefix("mailto:")
    if key == "date":
        return _normalize_date(text)
    return text


def normalize_fields(raw: Mapping[str, str]) -> dict[str, Any]:
    return {field: normalize_value(field, value) for field, value in raw.items()}


def enrich_record(normalized: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a copy of a normalized record with city_normalized and
    phone_normalized added where the source fields are present.

    Cities outside the lookup table keep their original spelling.
    """

    enriched = dict(normalized)
    city = enriched.get("city")
    if isinstance(city, str) and city.strip():
        enriched["city_normalized"] = canonical_city(city) or city.strip()
    phone = enriched.get("phone")
    if isinstance(phone, str) and phone.strip():
        enriched["phone_normalized"] = normalize_phone(phone)
    return enriched


def content_hash(base_url: str, fields: Mapping[str, Any]) -> str:
    """
    Content address for a scraped record: sha256 over the canonical JSON of
    (base URL, field map). Key order does not affect the digest.
    """

    canonical = json.dumps(
        {"url": base_url, "fields": dict(fields)},
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
