"""
Decade panel: emigration flows joined with GDP, population, conflict and area.

Key: (country_code, decade), where decade is the start year of the
decade. Every join is a left join anchored on the emigration rows, so
each emigration observation shows up; companion data that is missing
becomes NA and is filtered at the end (a row needs a valid GDP per
capita to stay in the panel).

Derived fields:
    decadal_emigration_rate = emigration_flow / population at decade start
    gdp_per_capita          = gdp / population at decade start
    small_state             = population < small_state_threshold
    small_or_conflict       = small_state or any civil conflict in the decade
    period                  = "<decade>–<decade + 10>"
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from .emigration import DECADE_LENGTH
from .errors import PanelIntegrityError

SMALL_STATE_POPULATION = 2_500_000
GDP_MEASURES = ("gdp_expenditure", "gdp_output")

PANEL_COLUMNS = [
    "country_code",
    "decade",
    "period",
    "emigration_stock",
    "emigration_flow",
    "population",
    "decadal_emigration_rate",
    "gdp",
    "gdp_per_capita",
    "conflict",
    "conflict_severity",
    "area_km2",
    "area_z",
    "area_scaled",
    "log_area",
    "small_state",
    "small_or_conflict",
]


def period_label(decade: int) -> str:
    return f"{int(decade)}–{int(decade) + DECADE_LENGTH}"


def aggregate_conflict_by_decade(
    conflict: Optional[pd.DataFrame],
    decades: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Project the annual conflict panel onto decades.

    A decade [d, d + 10) takes the worst severity seen in any of its years.
    Without `decades` the windows are calendar decades; with a
    (country_code, decade) frame each listed start opens its own window,
    so stock panels observed in e.g. 1995, 2005 still pick up conflicts.
    """
    if conflict is None or conflict.empty:
        return pd.DataFrame(
            {
                "country_code": pd.Series(dtype="string"),
                "decade": pd.Series(dtype="int64"),
                "conflict_severity": pd.Series(dtype="int64"),
            }
        )

    df = conflict[["country_code", "year", "conflict_severity"]].copy()
    df["country_code"] = df["country_code"].astype("string")
    df["year"] = df["year"].astype("int64")

    if decades is None:
        df["decade"] = (df["year"] // DECADE_LENGTH) * DECADE_LENGTH
    else:
        starts = decades[["country_code", "decade"]].drop_duplicates().copy()
        starts["country_code"] = starts["country_code"].astype("string")
        starts["decade"] = starts["decade"].astype("int64")
        df = df.merge(starts, on="country_code", how="inner")
        df = df[(df["year"] >= df["decade"]) & (df["year"] < df["decade"] + DECADE_LENGTH)]

    out = df.groupby(["country_code", "decade"], as_index=False)["conflict_severity"].max()
    out["country_code"] = out["country_code"].astype("string")
    out["decade"] = out["decade"].astype("int64")
    return out


def _at_decade_start(df: pd.DataFrame, columns) -> pd.DataFrame:
    out = df[["country_code", "year", *columns]].rename(columns={"year": "decade"}).copy()
    out["country_code"] = out["country_code"].astype("string")
    out["decade"] = out["decade"].astype("int64")
    return out.drop_duplicates(subset=["country_code", "decade"])


def _safe_ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    num = pd.to_numeric(numerator, errors="coerce").astype("float64")
    den = pd.to_numeric(denominator, errors="coerce").astype("float64")
    return num.where(den > 0) / den.where(den > 0)


def _check_population_coverage(panel: pd.DataFrame, strict: bool) -> None:
    """GDP and population come together; GDP alone means the join went wrong."""
    orphan = panel["gdp"].notna() & panel["population"].isna()
    if not orphan.any():
        return

    keys = panel.loc[orphan, ["country_code", "decade"]].astype(str).agg(" ".join, axis=1)
    message = (
        f"{int(orphan.sum())} panel rows have GDP but no population: "
        + ", ".join(keys.head(10).tolist())
    )
    if strict:
        raise PanelIntegrityError(message)
    print(f"[panel] WARNING {message}")


def build_decade_panel(
    emigration: pd.DataFrame,
    gdp: pd.DataFrame,
    conflict: Optional[pd.DataFrame] = None,
    area: Optional[pd.DataFrame] = None,
    *,
    population: Optional[pd.DataFrame] = None,
    gdp_measure: str = "gdp_expenditure",
    small_state_threshold: float = SMALL_STATE_POPULATION,
    strict_integrity: bool = True,
) -> pd.DataFrame:
    """
    Assemble the decade panel used by the kernel smoother.

    Population is taken from `population` when given, otherwise from the
    `population` column of the GDP table.
    """
    if gdp_measure not in GDP_MEASURES:
        raise ValueError(f"gdp_measure must be one of {GDP_MEASURES}, got {gdp_measure!r}")
    if gdp_measure not in gdp.columns:
        raise ValueError(f"GDP table has no {gdp_measure!r} column")

    panel = emigration[["country_code", "emigration_stock", "decade", "emigration_flow"]].copy()
    panel["country_code"] = panel["country_code"].astype("string")
    panel["decade"] = panel["decade"].astype("int64")
    rows_in = len(panel)

    gdp_at = _at_decade_start(gdp.rename(columns={gdp_measure: "gdp"}), ["gdp"])
    panel = panel.merge(gdp_at, on=["country_code", "decade"], how="left")

    if population is not None:
        pop_at = _at_decade_start(population, ["population"])
    elif "population" in gdp.columns:
        pop_at = _at_decade_start(gdp, ["population"])
    else:
        raise ValueError("no population source: pass `population` or a GDP table with a population column")
    panel = panel.merge(pop_at, on=["country_code", "decade"], how="left")

    _check_population_coverage(panel, strict_integrity)

    panel["decadal_emigration_rate"] = _safe_ratio(panel["emigration_flow"], panel["population"])
    panel["gdp_per_capita"] = _safe_ratio(panel["gdp"], panel["population"])

    conflict_decades = aggregate_conflict_by_decade(conflict, panel[["country_code", "decade"]])
    panel = panel.merge(conflict_decades, on=["country_code", "decade"], how="left")
    panel["conflict"] = panel["conflict_severity"].notna()
    panel["conflict_severity"] = panel["conflict_severity"].fillna(0).astype("int64")

    area_cols = ["area_km2", "area_z", "area_scaled", "log_area"]
    if area is not None and not area.empty:
        area_df = area[["country_code", *area_cols]].copy()
        area_df["country_code"] = area_df["country_code"].astype("string")
        panel = panel.merge(area_df, on="country_code", how="left")
    else:
        for col in area_cols:
            panel[col] = np.nan

    valid = panel["gdp_per_capita"].notna()
    dropped = int((~valid).sum())
    if dropped:
        print(f"[panel] dropping {dropped} of {rows_in} emigration rows without GDP per capita")
    panel = panel[valid].copy()

    panel["small_state"] = panel["population"] < small_state_threshold
    panel["small_or_conflict"] = panel["small_state"] | panel["conflict"]
    panel["period"] = panel["decade"].map(period_label).astype("string")

    panel = panel.sort_values(["country_code", "decade"]).reset_index(drop=True)
    return panel[PANEL_COLUMNS]


def build_emigration_rate_panel(emigration: pd.DataFrame, population: pd.DataFrame) -> pd.DataFrame:
    """Population-only variant: emigration rates without the GDP join."""
    panel = emigration[["country_code", "decade", "emigration_flow"]].copy()
    panel["country_code"] = panel["country_code"].astype("string")
    panel["decade"] = panel["decade"].astype("int64")

    panel = panel.merge(
        _at_decade_start(population, ["population"]),
        on=["country_code", "decade"],
        how="left",
    )
    panel["decadal_emigration_rate"] = _safe_ratio(panel["emigration_flow"], panel["population"])
    panel = panel[panel["decadal_emigration_rate"].notna()].copy()
    panel["period"] = panel["decade"].map(period_label).astype("string")
    return panel.sort_values(["country_code", "decade"]).reset_index(drop=True)


__all__ = [
    "SMALL_STATE_POPULATION",
    "GDP_MEASURES",
    "PANEL_COLUMNS",
    "period_label",
    "aggregate_conflict_by_decade",
    "build_decade_panel",
    "build_emigration_rate_panel",
]
