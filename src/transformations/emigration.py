"""
Decadal emigration flows derived from bilateral migrant stocks.

The bilateral panel (origin, destination, year, stock) is built upstream;
here we total the stock abroad per origin and year and take the change
over each decade:

    emigration_flow[decade] = stock[decade + 10] - stock[decade]

Negative flows (return migration outpacing new departures) are kept or
dropped depending on `drop_negative_flows`; the two downstream analyses
disagree on this, so neither is the default "truth".
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from .errors import SourceLayoutError

STOCK_REQUIRED_COLUMNS = ["origin", "destination", "year", "stock"]
DECADE_LENGTH = 10

# Origins left out to match the published reproduction of the hump:
# Sudan and South Sudan split in 2011, so their stock series break
# across the last decade and the first difference is not a flow.
REPRODUCTION_EXCLUDED_ORIGINS = ("SDN", "SSD")

EMIGRATION_COLUMNS = ["country_code", "decade", "emigration_stock", "emigration_flow"]


def read_migration_stock(path: Union[Path, str]) -> pd.DataFrame:
    """Read the bilateral stock panel from a csv or parquet file."""
    path = Path(path)
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def total_stock_by_origin(bilateral: pd.DataFrame) -> pd.DataFrame:
    """Sum bilateral stocks to (country_code, year, emigration_stock)."""
    missing = [c for c in STOCK_REQUIRED_COLUMNS if c not in bilateral.columns]
    if missing:
        raise SourceLayoutError(
            "migration_stock",
            expected=STOCK_REQUIRED_COLUMNS,
            found=[str(c) for c in bilateral.columns],
        )

    df = bilateral[["origin", "year", "stock"]].copy()
    df["origin"] = df["origin"].astype("string").str.strip().str.upper()
    df["year"] = pd.to_numeric(df["year"], errors="coerce")
    df["stock"] = pd.to_numeric(df["stock"], errors="coerce")
    df = df.dropna(subset=["origin", "year"]).copy()
    df["year"] = df["year"].astype("int64")

    totals = (
        df.groupby(["origin", "year"], as_index=False)["stock"]
        .sum(min_count=1)
        .rename(columns={"origin": "country_code", "stock": "emigration_stock"})
    )
    return totals


def build_emigration_flows(
    bilateral: pd.DataFrame,
    *,
    drop_negative_flows: bool = True,
    excluded_origins: Optional[Iterable[str]] = REPRODUCTION_EXCLUDED_ORIGINS,
) -> pd.DataFrame:
    """
    First difference of total outward stock across decade boundaries.

    A flow is only produced when both ends of the decade are observed;
    it is indexed by the decade start (`decade = year - 10`) and carries
    the stock at that start as `emigration_stock`.
    """
    totals = total_stock_by_origin(bilateral)

    if excluded_origins:
        excluded = {str(code).upper() for code in excluded_origins}
        totals = totals[~totals["country_code"].isin(excluded)]

    start = totals.rename(columns={"year": "decade"})
    end = totals.rename(columns={"emigration_stock": "stock_end"}).copy()
    end["decade"] = end["year"] - DECADE_LENGTH

    flows = start.merge(
        end[["country_code", "decade", "stock_end"]],
        on=["country_code", "decade"],
        how="inner",
    )
    flows["emigration_flow"] = flows["stock_end"] - flows["emigration_stock"]
    flows = flows.dropna(subset=["emigration_flow"]).copy()

    if drop_negative_flows:
        negative = int((flows["emigration_flow"] < 0).sum())
        if negative:
            print(f"[emigration] dropping {negative} negative decadal flows")
        flows = flows[flows["emigration_flow"] >= 0].copy()

    flows["country_code"] = flows["country_code"].astype("string")
    flows["decade"] = flows["decade"].astype("int64")
    flows = flows.sort_values(["country_code", "decade"]).reset_index(drop=True)
    return flows[EMIGRATION_COLUMNS]


__all__ = [
    "STOCK_REQUIRED_COLUMNS",
    "REPRODUCTION_EXCLUDED_ORIGINS",
    "EMIGRATION_COLUMNS",
    "read_migration_stock",
    "total_stock_by_origin",
    "build_emigration_flows",
]
