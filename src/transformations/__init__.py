"""
Transformations layer
----------------------

Pure functions turning raw source tables into normalized
(country_code, year | decade, value...) frames, plus the country code
harmonization they share and the decade panel join.
"""

from .country_codes import (  # noqa: F401
    SCHEME_LEGACY_NUMERIC,
    SCHEME_NAME,
    normalize_country_name,
    to_iso3,
    to_iso3_series,
)
from .errors import PanelIntegrityError, SourceLayoutError  # noqa: F401
from .population import (  # noqa: F401
    POPULATION_COLUMNS,
    build_population_dataframe,
    read_population_workbook,
)
from .gdp import GDP_COLUMNS, build_gdp_dataframe, read_gdp_workbook  # noqa: F401
from .conflict import CONFLICT_COLUMNS, build_conflict_dataframe, read_conflict_csv  # noqa: F401
from .emigration import (  # noqa: F401
    REPRODUCTION_EXCLUDED_ORIGINS,
    build_emigration_flows,
    read_migration_stock,
)
from .area import build_area_dataframe, read_geometry_features  # noqa: F401
from .decade_panel import (  # noqa: F401
    PANEL_COLUMNS,
    SMALL_STATE_POPULATION,
    aggregate_conflict_by_decade,
    build_decade_panel,
    build_emigration_rate_panel,
    period_label,
)

__all__ = [
    "SCHEME_NAME",
    "SCHEME_LEGACY_NUMERIC",
    "normalize_country_name",
    "to_iso3",
    "to_iso3_series",
    "SourceLayoutError",
    "PanelIntegrityError",
    "POPULATION_COLUMNS",
    "GDP_COLUMNS",
    "CONFLICT_COLUMNS",
    "PANEL_COLUMNS",
    "REPRODUCTION_EXCLUDED_ORIGINS",
    "SMALL_STATE_POPULATION",
    "read_population_workbook",
    "build_population_dataframe",
    "read_gdp_workbook",
    "build_gdp_dataframe",
    "read_conflict_csv",
    "build_conflict_dataframe",
    "read_migration_stock",
    "build_emigration_flows",
    "read_geometry_features",
    "build_area_dataframe",
    "aggregate_conflict_by_decade",
    "build_decade_panel",
    "build_emigration_rate_panel",
    "period_label",
]
