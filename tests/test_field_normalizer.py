"""
tests/test_field_normalizer.py

Unit tests for field normalization, national-id and phone validation and
content hashing. Pure functions, no I/O.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.scraping.normalization import (
    canonical_city,
    content_hash,
    enrich_record,
    normalize_fields,
    normalize_phone,
    normalize_value,
    parse_amount,
    validate_tckn,
)


class TestValidateTckn:
    def test_accepts_checksum_match(self) -> None:
        # 1+0+0+0+0+0+0+0+1+4 = 6
        assert validate_tckn("10000000146") is True

    def test_rejects_checksum_mismatch(self) -> None:
        assert validate_tckn("10000000147") is False

    @pytest.mark.parametrize("value", ["1000000014", "100000001466", ""])
    def test_rejects_wrong_length(self, value: str) -> None:
        assert validate_tckn(value) is False

    @pytest.mark.parametrize("value", ["1000000014a", "10000 00146", "١٠٠٠٠٠٠٠١٤٦"])
    def test_rejects_non_digits(self, value: str) -> None:
        assert validate_tckn(value) is False

    def test_rejects_none(self) -> None:
        assert validate_tckn(None) is False


class TestNormalizePhone:
    def test_ten_digit_mobile_gets_country_prefix(self) -> None:
        assert normalize_phone("532 123 45 67") == "905321234567"

    def test_strips_punctuation(self) -> None:
        assert normalize_phone("(532) 123-45-67") == "905321234567"

    def test_international_form_is_left_as_digits(self) -> None:
        assert normalize_phone("+90 532 123 45 67") == "905321234567"

    def test_trunk_prefixed_number_keeps_its_digits(self) -> None:
        assert normalize_phone("0532 123 45 67") == "05321234567"

    def test_landline_is_not_prefixed(self) -> None:
        assert normalize_phone("212 555 00 00") == "2125550000"

    def test_empty_input(self) -> None:
        assert normalize_phone(None) == ""
        assert normalize_phone("n/a") == ""


class TestCanonicalCity:
    @pytest.mark.parametrize("value", ["istanbul", "ISTANBUL", "İstanbul", "  İSTANBUL "])
    def test_istanbul_variants(self, value: str) -> None:
        assert canonical_city(value) == "İstanbul"

    def test_alias(self) -> None:
        assert canonical_city("Icel") == "Mersin"

    def test_unknown_city(self) -> None:
        assert canonical_city("Atlantis") is None


class TestParseAmount:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.425,50 TL", Decimal("1425.50")),
            ("1,425.50", Decimal("1425.50")),
            ("1.500", Decimal("1500")),
            ("142,5", Decimal("142.5")),
            ("₺ 2.000", Decimal("2000")),
            ("1500", Decimal("1500")),
        ],
    )
    def test_turkish_and_english_notation(self, text: str, expected: Decimal) -> None:
        assert parse_amount(text) == expected

    def test_numbers_pass_through(self) -> None:
        assert parse_amount(1425.5) == Decimal("1425.5")

    @pytest.mark.parametrize("text", [None, "", "Fiyat için arayın"])
    def test_unparseable(self, text: str | None) -> None:
        assert parse_amount(text) is None


class TestNormalizeValue:
    def test_price_field_becomes_decimal_string(self) -> None:
        assert normalize_value("price", " 1.425,50 TL ") == "1425.50"

    def test_unparseable_price_keeps_text(self) -> None:
        assert normalize_value("premium", "Teklif alın") == "Teklif alın"

    def test_email_is_lowercased_and_unprefixed(self) -> None:
        assert normalize_value("email", "mailto:Info@Sigorta.COM") == "info@sigorta.com"

    def test_date_becomes_iso(self) -> None:
        assert normalize_value("date", "17.10.2026") == "2026-10-17"

    def test_whitespace_is_collapsed(self) -> None:
        assert normalize_value("title", "  Kasko \n  Sigortası ") == "Kasko Sigortası"

    def test_normalize_fields_maps_every_field(self) -> None:
        result = normalize_fields({"phone": "532 123 45 67", "title": "Trafik"})
        assert result == {"phone": "905321234567", "title": "Trafik"}


class TestEnrichRecord:
    def test_adds_city_and_phone(self) -> None:
        enriched = enrich_record({"city": "izmir", "phone": "5321234567", "title": "x"})
        assert enriched["city_normalized"] == "İzmir"
        assert enriched["phone_normalized"] == "905321234567"
        assert enriched["title"] == "x"

    def test_unknown_city_keeps_spelling(self) -> None:
        assert enrich_record({"city": " Gotham "})["city_normalized"] == "Gotham"

    def test_input_is_not_mutated(self) -> None:
        record = {"city": "ankara"}
        enrich_record(record)
        assert record == {"city": "ankara"}

    def test_nothing_to_enrich(self) -> None:
        assert enrich_record({"title": "x"}) == {"title": "x"}


class TestContentHash:
    def test_same_url_and_fields_same_hash(self) -> None:
        first = content_hash("https://a.example.com/", {"title": "Kasko", "price": "1500"})
        second = content_hash("https://a.example.com/", {"price": "1500", "title": "Kasko"})
        assert first == second
        assert len(first) == 64

    def test_url_changes_hash(self) -> None:
        fields = {"title": "Kasko"}
        assert content_hash("https://a.example.com/", fields) != content_hash("https://b.example.com/", fields)

    def test_field_value_changes_hash(self) -> None:
        url = "https://a.example.com/"
        assert content_hash(url, {"price": "1500"}) != content_hash(url, {"price": "1501"})
