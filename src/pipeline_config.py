"""
Run configuration for the migration hump pipeline.

Defaults reproduce the published figure; every policy the two downstream
analyses disagree on (negative flows, excluded origins, GDP measure,
sparse periods) is a field here rather than a constant in the loaders.

Environment variables (optionally from a local .env):

    MIGRATION_HUMP_DATA_ROOT         local storage root (default: data)
    MIGRATION_HUMP_S3_BUCKET         store raw files and panels in S3 instead
    MIGRATION_HUMP_S3_PREFIX         key prefix inside the bucket
    MIGRATION_HUMP_STOCK_PATH        bilateral migration stock file (csv/parquet)
    MIGRATION_HUMP_GEOMETRY_PATH     country polygons (GeoJSON)
    MIGRATION_HUMP_POPULATION_URL    override of the UN WPP workbook URL
    MIGRATION_HUMP_GDP_URL           override of the Penn World Table URL
    MIGRATION_HUMP_CONFLICT_URL      override of the UCDP/PRIO ACD URL
    MIGRATION_HUMP_KEEP_NEGATIVE     "1" keeps negative decadal flows
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from adapters import LocalStorageAdapter, S3StorageAdapter, StorageAdapter
from env_loader import load_dotenv_if_present
from ingestion.sources import PENN_WORLD_TABLE_URL, UCDP_ACD_URL, UN_POPULATION_URL
from transformations.emigration import REPRODUCTION_EXCLUDED_ORIGINS
from transformations.decade_panel import SMALL_STATE_POPULATION

ENV_PREFIX = "MIGRATION_HUMP_"


@dataclass
class PipelineConfig:
    data_root: Path = Path("data")
    s3_bucket: Optional[str] = None
    s3_prefix: Optional[str] = None

    population_url: str = UN_POPULATION_URL
    gdp_url: str = PENN_WORLD_TABLE_URL
    conflict_url: str = UCDP_ACD_URL
    migration_stock_path: Optional[Path] = None
    geometry_path: Optional[Path] = None
    refresh: bool = False
    download_timeout: int = 120

    drop_negative_flows: bool = True
    excluded_origins: Tuple[str, ...] = REPRODUCTION_EXCLUDED_ORIGINS
    gdp_measure: str = "gdp_expenditure"
    use_un_population: bool = False
    small_state_threshold: float = SMALL_STATE_POPULATION
    strict_integrity: bool = True

    bandwidth_start: float = 0.40
    bandwidth_stop: float = 0.60
    bandwidth_step: float = 0.02
    min_observations: int = 5
    sparse_policy: str = "nan"

    analysis_dir: Path = field(default_factory=lambda: Path("analysis"))

    def make_storage(self) -> StorageAdapter:
        if self.s3_bucket:
            return S3StorageAdapter(self.s3_bucket, base_prefix=self.s3_prefix)
        return LocalStorageAdapter(self.data_root)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(ENV_PREFIX + name)
    return Path(value) if value else None


def load_config_from_env(dotenv_path: Optional[str] = None) -> PipelineConfig:
    """Build a PipelineConfig from MIGRATION_HUMP_* variables (and .env)."""
    load_dotenv_if_present(dotenv_path)
    defaults = PipelineConfig()

    return PipelineConfig(
        data_root=_env_path("DATA_ROOT") or defaults.data_root,
        s3_bucket=os.getenv(ENV_PREFIX + "S3_BUCKET") or None,
        s3_prefix=os.getenv(ENV_PREFIX + "S3_PREFIX") or None,
        population_url=os.getenv(ENV_PREFIX + "POPULATION_URL", defaults.population_url),
        gdp_url=os.getenv(ENV_PREFIX + "GDP_URL", defaults.gdp_url),
        conflict_url=os.getenv(ENV_PREFIX + "CONFLICT_URL", defaults.conflict_url),
        migration_stock_path=_env_path("STOCK_PATH"),
        geometry_path=_env_path("GEOMETRY_PATH"),
        drop_negative_flows=not _env_flag("KEEP_NEGATIVE", False),
    )


__all__ = ["ENV_PREFIX", "PipelineConfig", "load_config_from_env"]
