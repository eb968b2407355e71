"""
Analytical outputs for the decade panel.

- Artefact 1: migration_hump.png
  Scatter of decadal emigration rate against GDP per capita (log axis),
  one colour per period, with the central kernel curve of each period.

- Artefact 2: linear_trends.csv
  One row per period with the OLS slope/intercept/R² of the rate on
  log GDP per capita.
"""

from __future__ import annotations

import io
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from adapters import StorageAdapter

ANALYSIS_OUTPUT_DIR = Path("analysis")
HUMP_PNG_NAME = "migration_hump.png"
TRENDS_CSV_NAME = "linear_trends.csv"

# Logical prefix used when writing through a StorageAdapter
ANALYTICS_BASE_PREFIX = "analytics"


def build_migration_hump_figure(
    panel: pd.DataFrame,
    central: pd.DataFrame,
    *,
    output_dir: Path | str = ANALYSIS_OUTPUT_DIR,
    storage: StorageAdapter | None = None,
) -> Path | str:
    """Scatter + central smoothed curve per period."""
    if panel.empty:
        raise RuntimeError("No panel rows available for the migration hump figure")

    fig, ax = plt.subplots(figsize=(10, 6))
    periods = sorted(panel["period"].dropna().unique())
    colors = plt.cm.viridis(np.linspace(0, 1, max(len(periods), 1)))

    for color, period in zip(colors, periods):
        points = panel[panel["period"] == period]
        ax.scatter(
            points["gdp_per_capita"],
            points["decadal_emigration_rate"],
            color=color,
            alpha=0.35,
            s=14,
            edgecolors="none",
        )
        curve = central[(central["period"] == period) & central["smoothed_rate"].notna()]
        if not curve.empty:
            ax.plot(
                curve["gdp_per_capita"],
                curve["smoothed_rate"],
                color=color,
                linewidth=2,
                label=str(period),
            )

    ax.set_xscale("log")
    ax.set_xlabel("GDP per capita (2011 US$ PPP, log scale)")
    ax.set_ylabel("Decadal emigration rate")
    ax.set_title("Emigration and development by decade")
    ax.grid(True, linestyle="--", alpha=0.3)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(frameon=False, title="Period")
    fig.tight_layout()

    if storage is None:
        output_root = Path(output_dir)
        output_root.mkdir(parents=True, exist_ok=True)
        output_path = output_root / HUMP_PNG_NAME
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
        return output_path

    key = f"{ANALYTICS_BASE_PREFIX}/{HUMP_PNG_NAME}"
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=150)
    plt.close(fig)
    return storage.write_raw(key, buf.getvalue())


def build_trend_summary(
    trends: pd.DataFrame,
    *,
    output_dir: Path | str = ANALYSIS_OUTPUT_DIR,
    storage: StorageAdapter | None = None,
) -> Path | str:
    """Write the per-period linear trend table as CSV."""
    if storage is None:
        output_root = Path(output_dir)
        output_root.mkdir(parents=True, exist_ok=True)
        output_path = output_root / TRENDS_CSV_NAME
        trends.to_csv(output_path, index=False)
        return output_path

    key = f"{ANALYTICS_BASE_PREFIX}/{TRENDS_CSV_NAME}"
    buf = io.StringIO()
    trends.to_csv(buf, index=False)
    return storage.write_raw(key, buf.getvalue().encode("utf-8"))


__all__ = [
    "ANALYSIS_OUTPUT_DIR",
    "HUMP_PNG_NAME",
    "TRENDS_CSV_NAME",
    "build_migration_hump_figure",
    "build_trend_summary",
]
