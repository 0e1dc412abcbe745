"""
Declarative per-company form and result selector registry.

Companies are data: adding one means adding an entry to field_maps.json.
Entries are merged over the `default` block, so a company only lists what
differs.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any

from db.config import load_env_files

DEFAULT_FIELD_MAPS_PATH = Path(__file__).with_name("field_maps.json")


@dataclass(frozen=True)
class CompanyFieldMap:
    company: str
    fields: dict[str, str]
    submit_selectors: tuple[str, ...]
    result_selectors: dict[str, list[str]]
    price_multiplier: Decimal = Decimal("1")
    is_default: bool = field(default=False)


class FieldMapRegistry:
    """
    Lookup of CompanyFieldMap by company name (case-insensitive).
    """

    def __init__(self, *, default: CompanyFieldMap, companies: dict[str, CompanyFieldMap]) -> None:
        self._default = default
        self._companies = {name.strip().lower(): entry for name, entry in companies.items()}

    @classmethod
    def from_dict(cls, raw_data: dict[str, Any]) -> "FieldMapRegistry":
        default_raw = raw_data.get("default")
        if not isinstance(default_raw, dict):
            raise ValueError("Invalid field map config: 'default' must be an object.")
        companies_raw = raw_data.get("companies", {})
        if not isinstance(companies_raw, dict):
            raise ValueError("Invalid field map config: 'companies' must be an object.")

        default = _build_entry("default", default_raw, base=None)
        companies: dict[str, CompanyFieldMap] = {}
        for name, entry in companies_raw.items():
            if not isinstance(name, str) or not name.strip() or not isinstance(entry, dict):
                continue
            companies[name.strip()] = _build_entry(name.strip(), entry, base=default)
        return cls(default=default, companies=companies)

    @classmethod
    def load(cls, path: str | Path | None = None) -> "FieldMapRegistry":
        resolved = Path(path) if path is not None else DEFAULT_FIELD_MAPS_PATH
        if not resolved.exists():
            raise FileNotFoundError(f"Field map config file not found: {resolved}")
        return cls.from_dict(json.loads(resolved.read_text(encoding="utf-8")))

    @property
    def default(self) -> CompanyFieldMap:
        return self._default

    def companies(self) -> list[str]:
        return sorted(entry.company for entry in self._companies.values())

    def for_company(self, name: str) -> CompanyFieldMap:
        return self._companies.get(name.strip().lower(), self._default)


def _build_entry(name: str, entry: dict[str, Any], *, base: CompanyFieldMap | None) -> CompanyFieldMap:
    fields = dict(base.fields) if base else {}
    fields.update(_normalize_fields(entry.get("fields", {})))

    submit = _normalize_selector_list(entry.get("submit_selectors"))
    if not submit and base is not None:
        submit = list(base.submit_selectors)

    results = {key: list(value) for key, value in base.result_selectors.items()} if base else {}
    overrides = _normalize_result_selectors(entry.get("result_selectors", {}))
    empty = sorted(key for key, value in overrides.items() if not value)
    if empty:
        raise ValueError(f"Result selectors for '{name}' must not be empty: {', '.join(empty)}")
    results.update(overrides)

    multiplier = base.price_multiplier if base else Decimal("1")
    if "price_multiplier" in entry:
        multiplier = _parse_multiplier(name, entry["price_multiplier"])

    return CompanyFieldMap(
        company=name,
        fields=fields,
        submit_selectors=tuple(submit),
        result_selectors=results,
        price_multiplier=multiplier,
        is_default=base is None,
    )


def _normalize_fields(fields: object) -> dict[str, str]:
    if not isinstance(fields, dict):
        return {}
    return {
        key.strip(): value.strip()
        for key, value in fields.items()
        if isinstance(key, str) and isinstance(value, str) and key.strip() and value.strip()
    }


def _normalize_selector_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def _normalize_result_selectors(selectors: object) -> dict[str, list[str]]:
    if not isinstance(selectors, dict):
        return {}
    return {
        key.strip().lower(): _normalize_selector_list(value)
        for key, value in selectors.items()
        if isinstance(key, str) and key.strip()
    }


def _parse_multiplier(name: str, value: object) -> Decimal:
    try:
        multiplier = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid price_multiplier for '{name}': {value!r}") from exc
    if not multiplier.is_finite() or multiplier <= 0:
        raise ValueError(f"price_multiplier for '{name}' must be positive, got {value!r}")
    return multiplier


@lru_cache(maxsize=1)
def get_field_map_registry() -> FieldMapRegistry:
    """
    Return the registry loaded from QUOTE_FIELD_MAPS_PATH or the bundled file.
    """

    load_env_files()
    raw_path = os.getenv("QUOTE_FIELD_MAPS_PATH", "").strip()
    return FieldMapRegistry.load(raw_path or None)
