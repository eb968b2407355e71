from __future__ import annotations

import io
import json

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402
from botocore.exceptions import ClientError  # noqa: E402

from transformations.population import POPULATION_COUNTRY_COLUMN  # noqa: E402

WPP_HEADER = [
    "Index",
    "Variant",
    POPULATION_COUNTRY_COLUMN,
    "Notes",
    "Country code",
    "Type",
    "Parent code",
]


def make_population_workbook(rows, years=(1990, 2000), header_row=16) -> bytes:
    """ESTIMATES sheet laid out like WPP2019, banner rows included."""
    width = len(WPP_HEADER) + len(years)
    banner = [[f"United Nations banner line {i}"] + [None] * (width - 1) for i in range(header_row)]
    header = [WPP_HEADER + list(years)]
    body = [
        [i + 1, "Estimates", name, None, 100 + i, kind, 900] + list(values)
        for i, (name, kind, values) in enumerate(rows)
    ]
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(banner + header + body).to_excel(writer, sheet_name="ESTIMATES", header=False, index=False)
    return buf.getvalue()


def make_gdp_workbook(df: pd.DataFrame) -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Data", index=False)
    return buf.getvalue()


def square(lon0: float, lat0: float, size: float):
    return [
        [lon0, lat0],
        [lon0 + size, lat0],
        [lon0 + size, lat0 + size],
        [lon0, lat0 + size],
        [lon0, lat0],
    ]


def make_geojson(features) -> bytes:
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": props,
                "geometry": {"type": "Polygon", "coordinates": [square(*cell)]},
            }
            for props, cell in features
        ],
    }
    return json.dumps(payload).encode("utf-8")


class FakeS3:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body):
        self.objects[(Bucket, Key)] = bytes(Body)

    def get_object(self, Bucket, Key):
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def get_paginator(self, name):
        fake = self

        class _Paginator:
            def paginate(self, Bucket, Prefix):
                keys = sorted(k for b, k in fake.objects if b == Bucket and k.startswith(Prefix))
                yield {"Contents": [{"Key": k} for k in keys]}

        return _Paginator()


@pytest.fixture
def wpp_rows():
    return [
        ("Burundi", "Country", ["5 000.5", "6 000"]),
        ("Eswatini", "Country", [800, 1000]),
        ("Republic of Korea", "Country", [42000, 46000]),
        ("World", "World", [5000000, 6000000]),
    ]
