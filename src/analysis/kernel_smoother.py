"""
Nadaraya–Watson smoothing of emigration rates on log GDP per capita.

For each period separately and for each bandwidth of a small grid, the
decadal emigration rate is regressed on log(gdp_per_capita) with an
Epanechnikov kernel and evaluated at every GDP per capita observed in
that period. The central curve is the mean over bandwidths.

Periods with fewer than `min_observations` points do not get a fit:
with sparse_policy="nan" they still produce their grid of points with a
NaN smoothed_rate, with sparse_policy="skip" they are left out.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

SMOOTHED_COLUMNS = ["period", "bandwidth", "gdp_per_capita", "smoothed_rate"]
TREND_COLUMNS = ["period", "n_obs", "slope", "intercept", "r_squared"]
SPARSE_POLICIES = ("nan", "skip")


def bandwidth_grid(start: float = 0.40, stop: float = 0.60, step: float = 0.02) -> np.ndarray:
    """Inclusive grid of bandwidths; the defaults give 11 values."""
    if step <= 0 or start <= 0 or stop < start:
        raise ValueError(f"invalid bandwidth grid start={start} stop={stop} step={step}")
    # Last point may fall short of stop when step does not divide the range.
    n = int(np.floor((stop - start) / step + 1e-9)) + 1
    return np.round(start + step * np.arange(n), 10)


def epanechnikov(u: np.ndarray) -> np.ndarray:
    u = np.asarray(u, dtype=float)
    return np.where(np.abs(u) <= 1.0, 0.75 * (1.0 - u**2), 0.0)


def nadaraya_watson(
    x: np.ndarray,
    y: np.ndarray,
    x_eval: np.ndarray,
    bandwidth: float,
) -> np.ndarray:
    """Kernel-weighted local mean of `y` at each point of `x_eval`."""
    if bandwidth <= 0:
        raise ValueError(f"bandwidth must be positive, got {bandwidth}")

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    x_eval = np.asarray(x_eval, dtype=float)

    weights = epanechnikov((x_eval[:, None] - x[None, :]) / bandwidth)
    denom = weights.sum(axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        fitted = weights @ y / denom
    return np.where(denom > 0, fitted, np.nan)


def _empty_smoothed() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "period": pd.Series(dtype="string"),
            "bandwidth": pd.Series(dtype="float64"),
            "gdp_per_capita": pd.Series(dtype="float64"),
            "smoothed_rate": pd.Series(dtype="float64"),
        }
    )


def smooth_emigration_curves(
    panel: pd.DataFrame,
    bandwidths: Optional[Iterable[float]] = None,
    *,
    min_observations: int = 5,
    sparse_policy: str = "nan",
) -> pd.DataFrame:
    """
    One smoothed rate per (period, bandwidth, observed gdp_per_capita).

    `panel` needs period, gdp_per_capita and decadal_emigration_rate.
    """
    if sparse_policy not in SPARSE_POLICIES:
        raise ValueError(f"sparse_policy must be one of {SPARSE_POLICIES}, got {sparse_policy!r}")

    grid = bandwidth_grid() if bandwidths is None else np.asarray(list(bandwidths), dtype=float)
    if grid.size == 0 or (grid <= 0).any():
        raise ValueError(f"bandwidths must be a non-empty list of positive values, got {grid.tolist()}")

    data = panel[["period", "gdp_per_capita", "decadal_emigration_rate"]].copy()
    data = data[(data["gdp_per_capita"] > 0) & data["decadal_emigration_rate"].notna()]

    frames: List[pd.DataFrame] = []
    for period, group in data.groupby("period", sort=True):
        gdp_points = np.sort(group["gdp_per_capita"].unique())
        n_obs = len(group)

        if n_obs < min_observations:
            if sparse_policy == "skip":
                print(f"[smoother] skipping period {period}: {n_obs} observations < {min_observations}")
                continue
            print(f"[smoother] period {period} has {n_obs} observations < {min_observations}; no fit")
            fitted = {bw: np.full(gdp_points.shape, np.nan) for bw in grid}
        else:
            x = np.log(group["gdp_per_capita"].to_numpy(dtype=float))
            y = group["decadal_emigration_rate"].to_numpy(dtype=float)
            x_eval = np.log(gdp_points)
            fitted = {bw: nadaraya_watson(x, y, x_eval, bw) for bw in grid}

        for bw in grid:
            frames.append(
                pd.DataFrame(
                    {
                        "period": str(period),
                        "bandwidth": float(bw),
                        "gdp_per_capita": gdp_points,
                        "smoothed_rate": fitted[bw],
                    }
                )
            )

    if not frames:
        return _empty_smoothed()

    out = pd.concat(frames, ignore_index=True)
    out["period"] = out["period"].astype("string")
    return out[SMOOTHED_COLUMNS]


def central_curve(smoothed: pd.DataFrame) -> pd.DataFrame:
    """Average the smoothed rate across bandwidths at each (period, gdp_per_capita)."""
    return (
        smoothed.groupby(["period", "gdp_per_capita"], as_index=False)["smoothed_rate"]
        .mean()
        .sort_values(["period", "gdp_per_capita"])
        .reset_index(drop=True)
    )


def fit_linear_trends(panel: pd.DataFrame) -> pd.DataFrame:
    """Per-period OLS line of the emigration rate on log GDP per capita."""
    rows = []
    data = panel[(panel["gdp_per_capita"] > 0) & panel["decadal_emigration_rate"].notna()]
    for period, group in data.groupby("period", sort=True):
        x = np.log(group["gdp_per_capita"].to_numpy(dtype=float))
        y = group["decadal_emigration_rate"].to_numpy(dtype=float)
        if len(group) < 2 or np.ptp(x) == 0:
            slope = intercept = r2 = np.nan
        else:
            slope, intercept = np.polyfit(x, y, 1)
            r = np.corrcoef(x, y)[0, 1]
            r2 = float(r**2) if np.isfinite(r) else np.nan
        rows.append(
            {
                "period": str(period),
                "n_obs": int(len(group)),
                "slope": float(slope),
                "intercept": float(intercept),
                "r_squared": r2,
            }
        )
    return pd.DataFrame(rows, columns=TREND_COLUMNS)


__all__ = [
    "SMOOTHED_COLUMNS",
    "TREND_COLUMNS",
    "SPARSE_POLICIES",
    "bandwidth_grid",
    "epanechnikov",
    "nadaraya_watson",
    "smooth_emigration_curves",
    "central_curve",
    "fit_linear_trends",
]
