"""
Local orchestration entrypoint for the migration hump pipeline.

Runs, in order:

1. UN population (RAW xlsx -> population panel)
2. Penn World Table GDP (RAW xlsx -> GDP panel)
3. UCDP/PRIO conflict (RAW csv -> conflict panel)
4. Decadal emigration flows from the bilateral migration stock file
5. Country area from polygon geometry
6. Decade panel join
7. Kernel smoothing per period and bandwidth
8. Analytical outputs (figure + linear trend summary)

Steps 1-3 write the three persisted panels other analyses read. Steps
4-8 need the local stock file; without it the run stops after step 3.

Intended usage (local):

    PYTHONPATH=src python -m local_pipeline
    PYTHONPATH=src python -m local_pipeline --stock data/bilateral_stock.csv \
        --geometry data/countries.geojson --keep-negative-flows
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from adapters import LocalStorageAdapter, StorageAdapter
from analysis import (
    build_migration_hump_figure,
    build_trend_summary,
    central_curve,
    fit_linear_trends,
    smooth_emigration_curves,
)
from analysis.kernel_smoother import bandwidth_grid
from ingestion import RemoteSource, fetch_cached
from pipeline_config import PipelineConfig, load_config_from_env
from transformations import (
    CONFLICT_COLUMNS,
    GDP_COLUMNS,
    POPULATION_COLUMNS,
    build_area_dataframe,
    build_conflict_dataframe,
    build_decade_panel,
    build_emigration_flows,
    build_gdp_dataframe,
    build_population_dataframe,
    read_conflict_csv,
    read_geometry_features,
    read_gdp_workbook,
    read_migration_stock,
    read_population_workbook,
)

PROCESSED_BASE_PREFIX = "processed"
POPULATION_PANEL_KEY = f"{PROCESSED_BASE_PREFIX}/population/population.parquet"
GDP_PANEL_KEY = f"{PROCESSED_BASE_PREFIX}/gdp/gdp.parquet"
CONFLICT_PANEL_KEY = f"{PROCESSED_BASE_PREFIX}/conflict/conflict.parquet"
DECADE_PANEL_KEY = f"{PROCESSED_BASE_PREFIX}/decade_panel/decade_panel.parquet"
SMOOTHED_KEY = f"{PROCESSED_BASE_PREFIX}/smoothed/smoothed_curves.parquet"
CENTRAL_CURVE_KEY = f"{PROCESSED_BASE_PREFIX}/smoothed/central_curve.parquet"

TOTAL_STEPS = 8


def save_panel(df: pd.DataFrame, key: str, storage: StorageAdapter, sort_by: List[str]) -> str:
    """Write a panel sorted by its key so reruns give identical bytes."""
    ordered = df.sort_values(sort_by, kind="mergesort").reset_index(drop=True)
    return storage.write_parquet(ordered, key)


def load_panel(key: str, storage: StorageAdapter) -> pd.DataFrame:
    return storage.read_parquet(key)


def source_definitions(config: PipelineConfig) -> Dict[str, RemoteSource]:
    return {
        "population": RemoteSource("un_population", config.population_url, "wpp2019_total_population.xlsx"),
        "gdp": RemoteSource("penn_world_table", config.gdp_url, "pwt91.xlsx"),
        "conflict": RemoteSource("ucdp_acd", config.conflict_url, "ucdp-prio-acd-191.csv"),
    }


def build_source_panels(
    config: PipelineConfig,
    storage: StorageAdapter,
) -> Dict[str, pd.DataFrame]:
    """Steps 1-3: fetch (or reuse) the remote files and persist their panels."""
    sources = source_definitions(config)

    print(f"[1/{TOTAL_STEPS}] UN population -> population panel...")
    content = fetch_cached(sources["population"], storage, refresh=config.refresh, timeout=config.download_timeout)
    population = build_population_dataframe(read_population_workbook(content))
    location = save_panel(population[POPULATION_COLUMNS], POPULATION_PANEL_KEY, storage, ["country_code", "year"])
    print(f"      {len(population)} rows -> {location}")

    print(f"[2/{TOTAL_STEPS}] Penn World Table -> GDP panel...")
    content = fetch_cached(sources["gdp"], storage, refresh=config.refresh, timeout=config.download_timeout)
    gdp = build_gdp_dataframe(read_gdp_workbook(content))
    location = save_panel(gdp[GDP_COLUMNS], GDP_PANEL_KEY, storage, ["country_code", "year"])
    print(f"      {len(gdp)} rows -> {location}")

    print(f"[3/{TOTAL_STEPS}] UCDP/PRIO armed conflict -> conflict panel...")
    content = fetch_cached(sources["conflict"], storage, refresh=config.refresh, timeout=config.download_timeout)
    conflict = build_conflict_dataframe(read_conflict_csv(content))
    location = save_panel(conflict[CONFLICT_COLUMNS], CONFLICT_PANEL_KEY, storage, ["country_code", "year"])
    print(f"      {len(conflict)} rows -> {location}")

    return {"population": population, "gdp": gdp, "conflict": conflict}


def run_local_pipeline(
    config: Optional[PipelineConfig] = None,
    *,
    storage: Optional[StorageAdapter] = None,
) -> Dict[str, List[str]]:
    """
    Run the full pipeline end-to-end.

    Returns
    -------
    artefacts:
        Dictionary mapping step names to the locations they wrote.
    """
    config = config or load_config_from_env()
    storage = storage or config.make_storage()
    artefacts: Dict[str, List[str]] = {}

    panels = build_source_panels(config, storage)
    artefacts["source_panels"] = [POPULATION_PANEL_KEY, GDP_PANEL_KEY, CONFLICT_PANEL_KEY]

    if config.migration_stock_path is None:
        print(f"[4/{TOTAL_STEPS}] No migration stock file configured; stopping after the source panels.")
        return artefacts

    print(f"[4/{TOTAL_STEPS}] Decadal emigration flows from {config.migration_stock_path}...")
    emigration = build_emigration_flows(
        read_migration_stock(config.migration_stock_path),
        drop_negative_flows=config.drop_negative_flows,
        excluded_origins=config.excluded_origins,
    )
    print(f"      {len(emigration)} country-decade flows")

    area = None
    if config.geometry_path is not None:
        print(f"[5/{TOTAL_STEPS}] Country area from {config.geometry_path}...")
        area = build_area_dataframe(read_geometry_features(config.geometry_path))
        print(f"      {len(area)} countries with area")
    else:
        print(f"[5/{TOTAL_STEPS}] No geometry file configured; area fields left empty.")

    print(f"[6/{TOTAL_STEPS}] Building decade panel...")
    panel = build_decade_panel(
        emigration,
        panels["gdp"],
        panels["conflict"],
        area,
        population=panels["population"] if config.use_un_population else None,
        gdp_measure=config.gdp_measure,
        small_state_threshold=config.small_state_threshold,
        strict_integrity=config.strict_integrity,
    )
    location = save_panel(panel, DECADE_PANEL_KEY, storage, ["country_code", "decade"])
    artefacts["decade_panel"] = [location]
    print(f"      {len(panel)} rows -> {location}")

    print(f"[7/{TOTAL_STEPS}] Kernel smoothing per period...")
    smoothed = smooth_emigration_curves(
        panel,
        bandwidth_grid(config.bandwidth_start, config.bandwidth_stop, config.bandwidth_step),
        min_observations=config.min_observations,
        sparse_policy=config.sparse_policy,
    )
    central = central_curve(smoothed)
    artefacts["smoothed"] = [
        save_panel(smoothed, SMOOTHED_KEY, storage, ["period", "bandwidth", "gdp_per_capita"]),
        save_panel(central, CENTRAL_CURVE_KEY, storage, ["period", "gdp_per_capita"]),
    ]
    print(f"      {len(smoothed)} smoothed points, {len(central)} central points")

    print(f"[8/{TOTAL_STEPS}] Generating analytical outputs...")
    if panel.empty:
        print("      Decade panel is empty; no figure or trend summary written.")
        return artefacts
    # Local runs keep the artefacts under analysis_dir; remote storage gets them under analytics/.
    output_storage = None if isinstance(storage, LocalStorageAdapter) else storage
    figure_path = build_migration_hump_figure(
        panel, central, output_dir=config.analysis_dir, storage=output_storage
    )
    trends_path = build_trend_summary(
        fit_linear_trends(panel), output_dir=config.analysis_dir, storage=output_storage
    )
    artefacts["analysis"] = [str(figure_path), str(trends_path)]
    print(f"      Figure: {figure_path}")
    print(f"      Linear trends: {trends_path}")

    print("\nPipeline completed successfully.")
    return artefacts


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Run the migration hump pipeline end-to-end.",
    )
    parser.add_argument("--stock", type=Path, default=None, help="Bilateral migration stock file (csv/parquet).")
    parser.add_argument("--geometry", type=Path, default=None, help="Country polygons as GeoJSON.")
    parser.add_argument("--data-root", type=Path, default=None, help="Local storage root (default: data).")
    parser.add_argument("--refresh", action="store_true", help="Download the remote files again.")
    parser.add_argument(
        "--keep-negative-flows",
        action="store_true",
        help="Keep decades where the emigrant stock shrank.",
    )
    parser.add_argument(
        "--gdp-measure",
        choices=("gdp_expenditure", "gdp_output"),
        default=None,
        help="GDP measure used for GDP per capita (default: gdp_expenditure).",
    )
    parser.add_argument(
        "--un-population",
        action="store_true",
        help="Use UN population instead of Penn World Table population for rates.",
    )
    parser.add_argument("--min-observations", type=int, default=None, help="Minimum points per period to fit.")
    parser.add_argument(
        "--sparse-policy",
        choices=("nan", "skip"),
        default=None,
        help="What to do with periods below --min-observations.",
    )

    args = parser.parse_args()
    cfg = load_config_from_env()
    if args.stock is not None:
        cfg.migration_stock_path = args.stock
    if args.geometry is not None:
        cfg.geometry_path = args.geometry
    if args.data_root is not None:
        cfg.data_root = args.data_root
    if args.refresh:
        cfg.refresh = True
    if args.keep_negative_flows:
        cfg.drop_negative_flows = False
    if args.gdp_measure is not None:
        cfg.gdp_measure = args.gdp_measure
    if args.un_population:
        cfg.use_un_population = True
    if args.min_observations is not None:
        cfg.min_observations = args.min_observations
    if args.sparse_policy is not None:
        cfg.sparse_policy = args.sparse_policy

    run_local_pipeline(cfg)


__all__ = [
    "POPULATION_PANEL_KEY",
    "GDP_PANEL_KEY",
    "CONFLICT_PANEL_KEY",
    "DECADE_PANEL_KEY",
    "SMOOTHED_KEY",
    "CENTRAL_CURVE_KEY",
    "save_panel",
    "load_panel",
    "source_definitions",
    "build_source_panels",
    "run_local_pipeline",
]
