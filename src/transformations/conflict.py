"""
UCDP/PRIO Armed Conflict Dataset (version 19.1): internal conflicts.

One input row per conflict-year. We keep internal (type 3) and
internationalized internal (type 4) conflicts, map the Gleditsch-Ward
location number to ISO3 and keep the worst intensity per country-year
(1 = 25-999 battle deaths, 2 = 1000+).

References:
- Pettersson, Högbladh & Öberg (2019), Journal of Peace Research 56(4).
- Gleditsch et al. (2002), Journal of Peace Research 39(5).

Output schema (processed/conflict/conflict.parquet):
    country_code:      string (ISO3)
    year:              int
    conflict_severity: int (max intensity_level)
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

import pandas as pd

from .country_codes import SCHEME_LEGACY_NUMERIC, to_iso3_series
from .country_overrides import CONFLICT_LOCATION_OVERRIDES
from .errors import SourceLayoutError

CONFLICT_REQUIRED_COLUMNS = ["year", "gwno_loc", "type_of_conflict", "intensity_level"]
CIVIL_CONFLICT_TYPES = ("3", "4")

CONFLICT_COLUMNS = ["country_code", "year", "conflict_severity"]


def read_conflict_csv(source: Union[bytes, Path, str]) -> pd.DataFrame:
    handle = io.BytesIO(source) if isinstance(source, bytes) else Path(source)
    return pd.read_csv(handle, dtype={"gwno_loc": "string", "type_of_conflict": "string"})


def build_conflict_dataframe(
    raw: pd.DataFrame,
    *,
    conflict_types: Iterable[str] = CIVIL_CONFLICT_TYPES,
    location_overrides: Optional[Mapping[int, str]] = None,
) -> pd.DataFrame:
    """Filter civil conflicts and aggregate to max intensity per (country_code, year)."""
    missing = [c for c in CONFLICT_REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise SourceLayoutError(
            "conflict",
            expected=CONFLICT_REQUIRED_COLUMNS,
            found=[str(c) for c in raw.columns],
        )

    types = {str(t) for t in conflict_types}
    conflict_type = raw["type_of_conflict"].astype("string").str.strip().str.replace(r"\.0$", "", regex=True)
    df = raw.loc[conflict_type.isin(types), ["year", "gwno_loc", "intensity_level"]].copy()

    overrides = CONFLICT_LOCATION_OVERRIDES if location_overrides is None else location_overrides
    df["country_code"] = to_iso3_series(
        df["gwno_loc"].astype("string").str.strip(),
        scheme=SCHEME_LEGACY_NUMERIC,
        custom_match=overrides,
        source="conflict",
    )
    unmatched = int(df["country_code"].isna().sum())
    if unmatched:
        print(f"[conflict] dropping {unmatched} conflict-years without an ISO3 location")
    df = df.dropna(subset=["country_code"])

    df["year"] = pd.to_numeric(df["year"], errors="coerce")
    df["intensity_level"] = pd.to_numeric(df["intensity_level"], errors="coerce")
    df = df.dropna(subset=["year", "intensity_level"])

    if df.empty:
        return pd.DataFrame(
            {
                "country_code": pd.Series(dtype="string"),
                "year": pd.Series(dtype="int64"),
                "conflict_severity": pd.Series(dtype="int64"),
            }
        )

    out = (
        df.groupby(["country_code", "year"], as_index=False)["intensity_level"]
        .max()
        .rename(columns={"intensity_level": "conflict_severity"})
    )
    out["country_code"] = out["country_code"].astype("string")
    out["year"] = out["year"].astype("int64")
    out["conflict_severity"] = out["conflict_severity"].astype("int64")
    return out.sort_values(["country_code", "year"]).reset_index(drop=True)[CONFLICT_COLUMNS]


__all__ = [
    "CONFLICT_REQUIRED_COLUMNS",
    "CIVIL_CONFLICT_TYPES",
    "CONFLICT_COLUMNS",
    "read_conflict_csv",
    "build_conflict_dataframe",
]
