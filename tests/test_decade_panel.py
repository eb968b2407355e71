import pandas as pd
import pytest

from transformations.decade_panel import (
    PANEL_COLUMNS,
    aggregate_conflict_by_decade,
    build_decade_panel,
    build_emigration_rate_panel,
    period_label,
)
from transformations.errors import PanelIntegrityError


@pytest.fixture
def emigration():
    return pd.DataFrame(
        {
            "country_code": ["MEX", "MEX", "BDI", "ZZZ"],
            "decade": [1990, 2000, 1990, 1990],
            "emigration_stock": [4_000_000, 9_000_000, 100_000, 10],
            "emigration_flow": [5_000_000, 2_000_000, 200_000, 5],
        }
    )


@pytest.fixture
def gdp():
    return pd.DataFrame(
        {
            "country_code": ["MEX", "MEX", "BDI"],
            "year": [1990, 2000, 1990],
            "gdp_expenditure": [800e9, 1_200e9, 3e9],
            "gdp_output": [790e9, 1_150e9, 2.9e9],
            "population": [80e6, 100e6, 2e6],
        }
    )


@pytest.fixture
def conflict():
    return pd.DataFrame(
        {"country_code": ["BDI", "BDI", "MEX"], "year": [1993, 1995, 2012], "conflict_severity": [1, 2, 1]}
    )


def test_left_join_keeps_only_rows_with_gdp_per_capita(emigration, gdp, conflict):
    panel = build_decade_panel(emigration, gdp, conflict)

    assert list(panel.columns) == PANEL_COLUMNS
    assert len(panel) <= len(emigration)
    assert "ZZZ" not in set(panel["country_code"])
    assert len(panel) == 3


def test_derived_fields(emigration, gdp, conflict):
    panel = build_decade_panel(emigration, gdp, conflict).set_index(["country_code", "decade"])

    mex = panel.loc[("MEX", 1990)]
    assert mex["decadal_emigration_rate"] == pytest.approx(5_000_000 / 80e6)
    assert mex["gdp_per_capita"] == pytest.approx(10_000)
    assert mex["period"] == "1990–2000"
    assert not mex["small_state"]
    assert not mex["conflict"]
    assert not mex["small_or_conflict"]

    bdi = panel.loc[("BDI", 1990)]
    assert bdi["small_state"]
    assert bdi["conflict"]
    assert bdi["conflict_severity"] == 2
    assert bdi["small_or_conflict"]


def test_gdp_output_measure(emigration, gdp):
    panel = build_decade_panel(emigration, gdp, gdp_measure="gdp_output")
    mex = panel[(panel["country_code"] == "MEX") & (panel["decade"] == 1990)].iloc[0]
    assert mex["gdp_per_capita"] == pytest.approx(790e9 / 80e6)

    with pytest.raises(ValueError):
        build_decade_panel(emigration, gdp, gdp_measure="gdp")


def test_separate_population_table(emigration, gdp):
    population = pd.DataFrame(
        {"country_code": ["MEX", "MEX", "BDI"], "year": [1990, 2000, 1990], "population": [85e6, 98e6, 5.6e6]}
    )
    panel = build_decade_panel(emigration, gdp.drop(columns=["population"]), population=population)
    bdi = panel[panel["country_code"] == "BDI"].iloc[0]
    assert bdi["population"] == pytest.approx(5.6e6)
    assert not bdi["small_state"]


def test_gdp_without_population_is_flagged(emigration, gdp, capsys):
    population = pd.DataFrame({"country_code": ["MEX", "MEX"], "year": [1990, 2000], "population": [80e6, 100e6]})

    with pytest.raises(PanelIntegrityError) as excinfo:
        build_decade_panel(emigration, gdp.drop(columns=["population"]), population=population)
    assert "BDI 1990" in str(excinfo.value)

    panel = build_decade_panel(
        emigration,
        gdp.drop(columns=["population"]),
        population=population,
        strict_integrity=False,
    )
    assert "BDI" not in set(panel["country_code"])
    assert "WARNING" in capsys.readouterr().out


def test_area_fields_join_on_country(emigration, gdp):
    area = pd.DataFrame(
        {
            "country_code": ["MEX"],
            "area_km2": [1.96e6],
            "area_z": [0.5],
            "area_scaled": [1.0],
            "log_area": [14.49],
        }
    )
    panel = build_decade_panel(emigration, gdp, area=area)
    assert panel.loc[panel["country_code"] == "MEX", "area_km2"].tolist() == [1.96e6, 1.96e6]
    assert panel.loc[panel["country_code"] == "BDI", "area_km2"].isna().all()


def test_conflict_aggregates_to_decade_start():
    out = aggregate_conflict_by_decade(
        pd.DataFrame({"country_code": ["IRQ", "IRQ", "IRQ"], "year": [1990, 1999, 2000], "conflict_severity": [1, 2, 1]})
    )
    assert dict(zip(out["decade"], out["conflict_severity"])) == {1990: 2, 2000: 1}
    assert aggregate_conflict_by_decade(None).empty


def test_population_only_variant(emigration):
    population = pd.DataFrame({"country_code": ["MEX", "BDI"], "year": [1990, 1990], "population": [80e6, 2e6]})
    panel = build_emigration_rate_panel(emigration, population)
    assert set(zip(panel["country_code"], panel["decade"])) == {("MEX", 1990), ("BDI", 1990)}
    assert "gdp_per_capita" not in panel.columns


def test_period_label():
    assert period_label(1960) == "1960–1970"


def test_conflict_windows_follow_emigration_decades():
    conflict = pd.DataFrame(
        {"country_code": ["IRQ", "IRQ", "IRQ"], "year": [1994, 1997, 2004], "conflict_severity": [1, 2, 1]}
    )
    starts = pd.DataFrame({"country_code": ["IRQ", "IRQ"], "decade": [1995, 2005]})

    out = aggregate_conflict_by_decade(conflict, starts)

    # 1994 precedes the first window; 1997 and 2004 fall in [1995, 2005).
    assert dict(zip(out["decade"], out["conflict_severity"])) == {1995: 2}


def test_mid_decade_stock_years_still_pick_up_conflict():
    emigration = pd.DataFrame(
        {"country_code": ["BDI"], "decade": [1995], "emigration_stock": [100_000], "emigration_flow": [50_000]}
    )
    gdp = pd.DataFrame(
        {"country_code": ["BDI"], "year": [1995], "gdp_expenditure": [5e9], "population": [6e6]}
    )
    conflict = pd.DataFrame({"country_code": ["BDI"], "year": [2001], "conflict_severity": [2]})

    panel = build_decade_panel(emigration, gdp, conflict)

    assert panel["conflict"].tolist() == [True]
    assert panel["conflict_severity"].tolist() == [2]
    assert panel["period"].tolist() == ["1995–2005"]
