"""
Penn World Table 9.1: real GDP by country and year.

- rgdpe: expenditure-side real GDP at chained PPPs (mil. 2011US$)
- rgdpo: output-side real GDP at chained PPPs (mil. 2011US$)
- pop:   population (millions), optional

Output schema (processed/gdp/gdp.parquet):
    country_code:    string (ISO3)
    year:            int
    gdp_expenditure: float (2011US$)
    gdp_output:      float (2011US$)

`build_gdp_dataframe` also keeps `population` (persons) when the table
carries `pop`, so the panel can use GDP and population from one source.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Union

import pandas as pd

from .errors import SourceLayoutError

GDP_SHEET = "Data"
GDP_REQUIRED_COLUMNS = ["countrycode", "year", "rgdpe", "rgdpo"]
GDP_UNIT = 1_000_000
PWT_POPULATION_UNIT = 1_000_000

GDP_COLUMNS = ["country_code", "year", "gdp_expenditure", "gdp_output"]


def read_gdp_workbook(source: Union[bytes, Path, str]) -> pd.DataFrame:
    handle = io.BytesIO(source) if isinstance(source, bytes) else Path(source)
    try:
        return pd.read_excel(handle, sheet_name=GDP_SHEET, engine="openpyxl")
    except ValueError as exc:
        raise SourceLayoutError(
            "gdp",
            expected=[f"sheet {GDP_SHEET!r}"],
            found=[],
            detail=str(exc),
        ) from exc


def build_gdp_dataframe(raw: pd.DataFrame) -> pd.DataFrame:
    """Rename the two GDP measures and rescale millions to currency units."""
    missing = [c for c in GDP_REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise SourceLayoutError(
            "gdp",
            expected=GDP_REQUIRED_COLUMNS,
            found=[str(c) for c in raw.columns],
        )

    df = pd.DataFrame(
        {
            "country_code": raw["countrycode"].astype("string").str.strip().str.upper(),
            "year": pd.to_numeric(raw["year"], errors="coerce"),
            "gdp_expenditure": pd.to_numeric(raw["rgdpe"], errors="coerce") * GDP_UNIT,
            "gdp_output": pd.to_numeric(raw["rgdpo"], errors="coerce") * GDP_UNIT,
        }
    )
    if "pop" in raw.columns:
        df["population"] = pd.to_numeric(raw["pop"], errors="coerce") * PWT_POPULATION_UNIT

    valid_code = df["country_code"].str.fullmatch(r"[A-Z]{3}").fillna(False)
    dropped = int((~valid_code).sum())
    if dropped:
        print(f"[gdp] dropping {dropped} rows without a valid ISO3 code")
    df = df[valid_code & df["year"].notna()].copy()
    df["year"] = df["year"].astype("int64")

    df = df.drop_duplicates(subset=["country_code", "year"], keep="first")
    return df.sort_values(["country_code", "year"]).reset_index(drop=True)


__all__ = [
    "GDP_SHEET",
    "GDP_REQUIRED_COLUMNS",
    "GDP_COLUMNS",
    "read_gdp_workbook",
    "build_gdp_dataframe",
]
