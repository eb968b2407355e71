"""
Country code harmonization.

Maps free-text country names or Correlates of War state numbers to ISO3
codes. Unknown inputs give `None` (or `pd.NA` in a Series), never an
exception; it is up to each loader to drop those rows explicitly.

Lookup order for a single value:
1. `custom_match` passed by the caller (keyed by the raw value)
2. the scheme overrides in `country_overrides`
3. the primary table (pycountry + aliases for names, COW table for codes)
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

import pandas as pd
import pycountry

from .country_overrides import COW_CODES, NAME_ALIASES, NAME_OVERRIDES

SCHEME_NAME = "name"
SCHEME_LEGACY_NUMERIC = "legacy-numeric"
SCHEMES = (SCHEME_NAME, SCHEME_LEGACY_NUMERIC)


def normalize_country_name(name: Any) -> str:
    """
    Normalize country names so that spelling variants compare equal.

    - lower case
    - accents removed
    - non alphanumeric characters (except space) replaced by spaces
    - repeated spaces collapsed, ends trimmed
    """
    if name is None or (not isinstance(name, str) and pd.isna(name)):
        return ""

    s = str(name).lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9 ]", " ", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


@lru_cache(maxsize=1)
def reference_name_table() -> Dict[str, str]:
    """Normalized name -> ISO3, built from ISO 3166 plus the alias table."""
    table: Dict[str, str] = {}
    for country in pycountry.countries:
        for attr in ("name", "official_name", "common_name", "alpha_3"):
            value = getattr(country, attr, None)
            if value:
                table[normalize_country_name(value)] = country.alpha_3
    table.update(NAME_ALIASES)
    return table


def _parse_legacy_code(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if pd.isna(value) or not value.is_integer():
            return None
        return int(value)

    text = str(value).strip()
    if text.endswith(".0"):
        text = text[:-2]
    if not text.isdigit():
        return None
    return int(text)


def to_iso3(
    value: Any,
    scheme: str = SCHEME_NAME,
    custom_match: Optional[Mapping[Any, str]] = None,
) -> Optional[str]:
    """
    Return the ISO3 code for `value` under `scheme`, or None when unmatched.

    `scheme` is "name" (free-text names) or "legacy-numeric" (COW codes).
    `custom_match` works like extra overrides with the highest precedence.
    """
    if scheme == SCHEME_NAME:
        if custom_match and value in custom_match:
            return custom_match[value]
        if isinstance(value, str) and value.strip() in NAME_OVERRIDES:
            return NAME_OVERRIDES[value.strip()]
        key = normalize_country_name(value)
        if not key:
            return None
        return reference_name_table().get(key)

    if scheme == SCHEME_LEGACY_NUMERIC:
        code = _parse_legacy_code(value)
        if code is None:
            return None
        if custom_match:
            for candidate in (value, code, str(code)):
                if candidate in custom_match:
                    return custom_match[candidate]
        return COW_CODES.get(code)

    raise ValueError(f"Unknown country code scheme {scheme!r}; expected one of {SCHEMES}")


def to_iso3_series(
    values: pd.Series,
    scheme: str = SCHEME_NAME,
    custom_match: Optional[Mapping[Any, str]] = None,
    *,
    source: str = "country_codes",
) -> pd.Series:
    """
    Vectorized `to_iso3`. Unmatched entries become pd.NA and are reported
    once, in the same spirit as a "some values were not matched" warning.
    """
    if scheme not in SCHEMES:
        raise ValueError(f"Unknown country code scheme {scheme!r}; expected one of {SCHEMES}")

    uniques = pd.unique(values.dropna())
    lookup = {v: to_iso3(v, scheme=scheme, custom_match=custom_match) for v in uniques}
    codes = values.map(lookup).astype("string")

    unmatched = sorted(str(v) for v, code in lookup.items() if code is None)
    if unmatched:
        print(
            f"[{source}] {len(unmatched)} values were not matched unambiguously: "
            + ", ".join(unmatched)
        )
    return codes


__all__ = [
    "SCHEME_NAME",
    "SCHEME_LEGACY_NUMERIC",
    "SCHEMES",
    "normalize_country_name",
    "reference_name_table",
    "to_iso3",
    "to_iso3_series",
]
