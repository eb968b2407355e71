"""
Analysis layer
--------------

Kernel smoothing of the decade panel and the analytical outputs built
from it:

- migration_hump.png
- linear_trends.csv
"""

from .kernel_smoother import (  # noqa: F401
    bandwidth_grid,
    central_curve,
    epanechnikov,
    fit_linear_trends,
    nadaraya_watson,
    smooth_emigration_curves,
)
from .hump_figures import (  # noqa: F401
    ANALYSIS_OUTPUT_DIR,
    HUMP_PNG_NAME,
    TRENDS_CSV_NAME,
    build_migration_hump_figure,
    build_trend_summary,
)

__all__ = [
    "ANALYSIS_OUTPUT_DIR",
    "HUMP_PNG_NAME",
    "TRENDS_CSV_NAME",
    "bandwidth_grid",
    "epanechnikov",
    "nadaraya_watson",
    "smooth_emigration_curves",
    "central_curve",
    "fit_linear_trends",
    "build_migration_hump_figure",
    "build_trend_summary",
]
