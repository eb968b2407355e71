"""
UN World Population Prospects 2019: total population by country and year.

Source workbook (WPP2019_POP_F01_1_TOTAL_POPULATION_BOTH_SEXES.xlsx):
- sheet "ESTIMATES", 16 banner rows before the header row
- one row per region/subregion/country, one column per year (1950..2020)
- values in thousands of persons

Output schema (processed/population/population.parquet):
    country_code: string (ISO3)
    year:         int
    population:   float (persons)
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import List, Union

import pandas as pd

from .country_codes import SCHEME_NAME, to_iso3_series
from .errors import SourceLayoutError

POPULATION_SHEET = "ESTIMATES"
POPULATION_HEADER_ROW = 16
POPULATION_COUNTRY_COLUMN = "Region, subregion, country or area *"
POPULATION_TYPE_COLUMN = "Type"
POPULATION_CODE_COLUMN = "Country code"
POPULATION_REQUIRED_COLUMNS = [
    POPULATION_COUNTRY_COLUMN,
    POPULATION_TYPE_COLUMN,
    POPULATION_CODE_COLUMN,
]
POPULATION_UNIT = 1000

POPULATION_COLUMNS = ["country_code", "year", "population"]


def _year_columns(columns) -> List:
    return [c for c in columns if str(c).strip().isdigit() and len(str(c).strip()) == 4]


def _header_label(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip() if pd.notna(value) else ""


def parse_number_series(values: pd.Series) -> pd.Series:
    """Parse numbers written with thousand separators or blank markers ("...")."""
    if pd.api.types.is_numeric_dtype(values):
        return pd.to_numeric(values, errors="coerce")
    text = values.astype("string").str.replace(r"[\s,]", "", regex=True)
    return pd.to_numeric(text, errors="coerce")


def _validate_header(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Check the header row sits at POPULATION_HEADER_ROW and promote it.

    `raw` is the sheet read with header=None. We never guess another
    offset; if the country column shows up elsewhere the error says where.
    """
    if raw.shape[0] <= POPULATION_HEADER_ROW:
        raise SourceLayoutError(
            "population",
            expected=POPULATION_REQUIRED_COLUMNS,
            found=[],
            detail=f"sheet has {raw.shape[0]} rows, header expected at row {POPULATION_HEADER_ROW}",
        )

    header = [_header_label(v) for v in raw.iloc[POPULATION_HEADER_ROW]]
    missing = [c for c in POPULATION_REQUIRED_COLUMNS if c not in header]
    if missing:
        detail = f"header expected at row {POPULATION_HEADER_ROW}"
        for idx in range(raw.shape[0]):
            row = [str(v).strip() for v in raw.iloc[idx] if pd.notna(v)]
            if POPULATION_COUNTRY_COLUMN in row:
                detail += f", country column found at row {idx}"
                break
        raise SourceLayoutError(
            "population",
            expected=POPULATION_REQUIRED_COLUMNS,
            found=[h for h in header if h],
            detail=detail,
        )

    body = raw.iloc[POPULATION_HEADER_ROW + 1 :].copy()
    body.columns = [int(h) if h.isdigit() else h for h in header]
    return body.reset_index(drop=True)


def read_population_workbook(source: Union[bytes, Path, str]) -> pd.DataFrame:
    """
    Read the ESTIMATES sheet and return it with the validated header applied.

    Raises SourceLayoutError when the sheet is missing or the header moved.
    """
    handle = io.BytesIO(source) if isinstance(source, bytes) else Path(source)
    try:
        raw = pd.read_excel(
            handle,
            sheet_name=POPULATION_SHEET,
            header=None,
            engine="openpyxl",
        )
    except ValueError as exc:
        raise SourceLayoutError(
            "population",
            expected=[f"sheet {POPULATION_SHEET!r}"],
            found=[],
            detail=str(exc),
        ) from exc
    return _validate_header(raw)


def build_population_dataframe(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Wide (one column per year) -> long (one row per country-year).

    - keeps only rows with Type == "Country" (drops regions/aggregates)
    - harmonizes names to ISO3 and drops unmatched rows
    - converts thousands to persons
    """
    missing = [c for c in POPULATION_REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise SourceLayoutError(
            "population",
            expected=POPULATION_REQUIRED_COLUMNS,
            found=[str(c) for c in raw.columns],
        )

    years = _year_columns(raw.columns)
    if not years:
        raise SourceLayoutError(
            "population",
            expected=["<year columns>"],
            found=[str(c) for c in raw.columns],
        )

    countries = raw[raw[POPULATION_TYPE_COLUMN].astype("string").str.strip() == "Country"].copy()
    countries["country_code"] = to_iso3_series(
        countries[POPULATION_COUNTRY_COLUMN],
        scheme=SCHEME_NAME,
        source="population",
    )
    unmatched = int(countries["country_code"].isna().sum())
    if unmatched:
        print(f"[population] dropping {unmatched} country rows without an ISO3 code")
    countries = countries.dropna(subset=["country_code"])

    long = countries.melt(
        id_vars=["country_code"],
        value_vars=years,
        var_name="year",
        value_name="population",
    )
    long["year"] = pd.to_numeric(long["year"].astype(str).str.strip()).astype("int64")
    long["population"] = parse_number_series(long["population"]) * POPULATION_UNIT
    long["country_code"] = long["country_code"].astype("string")

    long = long.drop_duplicates(subset=["country_code", "year"], keep="first")
    long = long.sort_values(["country_code", "year"]).reset_index(drop=True)
    return long[POPULATION_COLUMNS]


__all__ = [
    "POPULATION_SHEET",
    "POPULATION_HEADER_ROW",
    "POPULATION_COUNTRY_COLUMN",
    "POPULATION_COLUMNS",
    "parse_number_series",
    "read_population_workbook",
    "build_population_dataframe",
]
