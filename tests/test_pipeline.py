import io

import pandas as pd
import pytest

import ingestion.sources
from adapters import LocalStorageAdapter, S3StorageAdapter
from analysis.kernel_smoother import SMOOTHED_COLUMNS
from conftest import FakeS3, make_geojson, make_gdp_workbook, make_population_workbook
from local_pipeline import (
    CONFLICT_PANEL_KEY,
    DECADE_PANEL_KEY,
    GDP_PANEL_KEY,
    POPULATION_PANEL_KEY,
    SMOOTHED_KEY,
    load_panel,
    run_local_pipeline,
    source_definitions,
)
from pipeline_config import PipelineConfig
from transformations.decade_panel import PANEL_COLUMNS

COUNTRIES = {
    # iso3: (WPP name, population in millions 1990/2000, rgdpe in millions 1990/2000)
    "MEX": ("Mexico", (84.0, 98.0), (700_000.0, 1_000_000.0)),
    "BDI": ("Burundi", (5.6, 6.4), (4_000.0, 4_500.0)),
    "KOR": ("Republic of Korea", (42.9, 46.8), (420_000.0, 900_000.0)),
    "SWZ": ("Eswatini", (0.86, 1.03), (4_500.0, 6_000.0)),
}


def _population_bytes():
    rows = [
        (name, "Country", [pop[0] * 1000, pop[1] * 1000])
        for name, pop, _ in COUNTRIES.values()
    ]
    return make_population_workbook(rows, years=(1990, 2000))


def _gdp_bytes():
    records = []
    for code, (_, pop, gdp) in COUNTRIES.items():
        for year, p, g in zip((1990, 2000), pop, gdp):
            records.append({"countrycode": code, "year": year, "rgdpe": g, "rgdpo": g * 0.98, "pop": p})
    return make_gdp_workbook(pd.DataFrame(records))


def _conflict_bytes():
    frame = pd.DataFrame(
        [
            {"conflict_id": 1, "year": 1993, "gwno_loc": "516", "type_of_conflict": 3, "intensity_level": 2},
            {"conflict_id": 1, "year": 1995, "gwno_loc": "516", "type_of_conflict": 3, "intensity_level": 1},
            {"conflict_id": 2, "year": 1994, "gwno_loc": "70", "type_of_conflict": 4, "intensity_level": 1},
            {"conflict_id": 3, "year": 1996, "gwno_loc": "732", "type_of_conflict": 2, "intensity_level": 2},
        ]
    )
    return frame.to_csv(index=False).encode("utf-8")


def _stock_csv(path):
    records = []
    stocks = {
        "MEX": (4_500_000, 9_500_000, 12_000_000),
        "BDI": (300_000, 400_000, 380_000),
        "KOR": (1_600_000, 1_900_000, 2_300_000),
        "SWZ": (30_000, 40_000, 48_000),
        "SDN": (500_000, 600_000, 900_000),
    }
    for origin, values in stocks.items():
        for year, value in zip((1990, 2000, 2010), values):
            records.append({"origin": origin, "destination": "USA", "year": year, "stock": value * 0.75})
            records.append({"origin": origin, "destination": "CAN", "year": year, "stock": value * 0.25})
    pd.DataFrame(records).to_csv(path, index=False)
    return path


def _seed_raw_files(config, storage):
    sources = source_definitions(config)
    storage.write_raw(sources["population"].raw_key, _population_bytes())
    storage.write_raw(sources["gdp"].raw_key, _gdp_bytes())
    storage.write_raw(sources["conflict"].raw_key, _conflict_bytes())


@pytest.fixture
def offline_run(tmp_path, monkeypatch):
    def no_network(url, **kwargs):
        raise AssertionError(f"unexpected download of {url}")

    monkeypatch.setattr(ingestion.sources, "fetch_bytes", no_network)

    geometry = tmp_path / "countries.geojson"
    geometry.write_bytes(
        make_geojson(
            [
                ({"ISO_A3": "MEX"}, (-110, 15, 15)),
                ({"ISO_A3": "BDI"}, (29, -4, 1)),
                ({"ISO_A3": "KOR"}, (126, 34, 3)),
                ({"ISO_A3": "SWZ"}, (31, -27, 0.5)),
            ]
        )
    )
    config = PipelineConfig(
        data_root=tmp_path / "data",
        analysis_dir=tmp_path / "analysis",
        migration_stock_path=_stock_csv(tmp_path / "stock.csv"),
        geometry_path=geometry,
        min_observations=2,
    )
    storage = LocalStorageAdapter(config.data_root)
    _seed_raw_files(config, storage)
    return config, storage


def test_end_to_end_panel_contract(offline_run):
    config, storage = offline_run
    artefacts = run_local_pipeline(config, storage=storage)

    assert set(artefacts) == {"source_panels", "decade_panel", "smoothed", "analysis"}
    assert (config.analysis_dir / "migration_hump.png").is_file()
    assert (config.analysis_dir / "linear_trends.csv").is_file()

    panel = load_panel(DECADE_PANEL_KEY, storage)
    assert list(panel.columns) == PANEL_COLUMNS
    # SDN is excluded and BDI's 2000s flow is negative.
    assert sorted(zip(panel["country_code"], panel["decade"])) == [
        ("BDI", 1990),
        ("KOR", 1990),
        ("KOR", 2000),
        ("MEX", 1990),
        ("MEX", 2000),
        ("SWZ", 1990),
        ("SWZ", 2000),
    ]
    assert set(panel["period"]) == {"1990–2000", "2000–2010"}

    bdi = panel[panel["country_code"] == "BDI"].iloc[0]
    assert bdi["emigration_flow"] == pytest.approx(100_000)
    assert bdi["decadal_emigration_rate"] == pytest.approx(100_000 / 5_600_000)
    assert bdi["gdp_per_capita"] == pytest.approx(4_000e6 / 5.6e6)
    assert bool(bdi["conflict"]) and bdi["conflict_severity"] == 2

    mex = panel[(panel["country_code"] == "MEX") & (panel["decade"] == 1990)].iloc[0]
    assert bool(mex["conflict"]) and mex["conflict_severity"] == 1
    # Type 2 (interstate) conflicts are not civil conflicts.
    assert not panel.loc[panel["country_code"] == "KOR", "conflict"].any()

    swz = panel[panel["country_code"] == "SWZ"]
    assert swz["small_state"].all() and swz["small_or_conflict"].all()
    assert panel["area_km2"].notna().all()

    smoothed = load_panel(SMOOTHED_KEY, storage)
    assert list(smoothed.columns) == SMOOTHED_COLUMNS
    assert smoothed["bandwidth"].nunique() == 11
    assert set(smoothed["period"]) == {"1990–2000", "2000–2010"}


def test_rerun_is_byte_identical(offline_run):
    config, storage = offline_run
    keys = [POPULATION_PANEL_KEY, GDP_PANEL_KEY, CONFLICT_PANEL_KEY, DECADE_PANEL_KEY, SMOOTHED_KEY]

    run_local_pipeline(config, storage=storage)
    first = {key: storage.read_raw(key) for key in keys}
    run_local_pipeline(config, storage=storage)
    second = {key: storage.read_raw(key) for key in keys}

    assert first == second


def test_source_panels_only_without_stock_file(offline_run, capsys):
    config, storage = offline_run
    config.migration_stock_path = None

    artefacts = run_local_pipeline(config, storage=storage)

    assert list(artefacts) == ["source_panels"]
    assert not storage.exists(DECADE_PANEL_KEY)
    assert "stopping after the source panels" in capsys.readouterr().out

    population = pd.read_parquet(io.BytesIO(storage.read_raw(POPULATION_PANEL_KEY)))
    assert list(population.columns) == ["country_code", "year", "population"]
    assert set(population["country_code"]) == set(COUNTRIES)
    assert population.loc[
        (population["country_code"] == "BDI") & (population["year"] == 1990), "population"
    ].iloc[0] == pytest.approx(5_600_000)
    conflict = load_panel(CONFLICT_PANEL_KEY, storage)
    assert set(conflict["country_code"]) == {"BDI", "MEX"}


def test_remote_storage_receives_analysis_outputs(offline_run):
    config, _ = offline_run
    client = FakeS3()
    storage = S3StorageAdapter("hump-bucket", base_prefix="runs/", boto3_client=client)
    _seed_raw_files(config, storage)

    artefacts = run_local_pipeline(config, storage=storage)

    assert artefacts["analysis"] == [
        "s3://hump-bucket/runs/analytics/migration_hump.png",
        "s3://hump-bucket/runs/analytics/linear_trends.csv",
    ]
    assert client.objects[("hump-bucket", "runs/analytics/migration_hump.png")].startswith(b"\x89PNG")
    trends = pd.read_csv(io.BytesIO(client.objects[("hump-bucket", "runs/analytics/linear_trends.csv")]))
    assert set(trends["period"]) == {"1990–2000", "2000–2010"}
    assert ("hump-bucket", "runs/" + DECADE_PANEL_KEY) in client.objects
    assert not config.analysis_dir.exists()
