import io

import pandas as pd
import pytest

from transformations.conflict import CONFLICT_COLUMNS, build_conflict_dataframe, read_conflict_csv
from transformations.errors import SourceLayoutError


@pytest.fixture
def acd():
    return pd.DataFrame(
        {
            "conflict_id": [1, 2, 3, 4, 5, 6, 7],
            "year": [1990, 1990, 1990, 1990, 1991, 1990, 1990],
            "gwno_loc": ["645", "645", "678", "750, 770", "645", "2", "999"],
            "type_of_conflict": ["3", "4", "3", "3", "3", "2", "3"],
            "intensity_level": [1, 2, 1, 2, 1, 2, 1],
        }
    )


def test_keeps_worst_intensity_per_country_year(acd):
    out = build_conflict_dataframe(acd)

    assert list(out.columns) == CONFLICT_COLUMNS
    rows = {(r.country_code, r.year): r.conflict_severity for r in out.itertuples()}
    assert rows == {("IRQ", 1990): 2, ("IRQ", 1991): 1, ("YEM", 1990): 1}


def test_interstate_conflicts_are_excluded(acd):
    out = build_conflict_dataframe(acd)
    assert "USA" not in set(out["country_code"])


def test_without_overrides_successor_codes_are_dropped(acd):
    out = build_conflict_dataframe(acd, location_overrides={})
    assert "YEM" not in set(out["country_code"])


def test_read_csv_keeps_location_as_text(acd):
    raw = read_conflict_csv(acd.to_csv(index=False).encode("utf-8"))
    assert raw["gwno_loc"].iloc[3] == "750, 770"
    assert len(build_conflict_dataframe(raw)) == 3


def test_missing_column_fails_loudly(acd):
    with pytest.raises(SourceLayoutError):
        build_conflict_dataframe(acd.drop(columns=["intensity_level"]))
