"""
Country surface area from polygon geometry (GeoJSON).

Each feature needs an ISO3 code in its properties and a Polygon or
MultiPolygon geometry in lon/lat degrees. Areas are geodesic areas on the
authalic sphere of WGS84, holes subtracted, summed over all features that
share a code.

Output schema:
    country_code: string (ISO3)
    area_km2:     float
    area_z:       float (z-score across countries)
    area_scaled:  float (min-max scaled to [0, 1])
    log_area:     float (natural log of area_km2)
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .errors import SourceLayoutError

# Authalic (equal-area) radius of the WGS84 ellipsoid, in metres.
AUTHALIC_RADIUS_M = 6_371_007.2

CODE_PROPERTIES = ("ISO_A3", "ADM0_A3", "iso_a3", "iso3", "country_code")

AREA_COLUMNS = ["country_code", "area_km2", "area_z", "area_scaled", "log_area"]

_ISO3 = re.compile(r"^[A-Z]{3}$")


def read_geometry_features(source: Union[bytes, Path, str]) -> List[Dict[str, Any]]:
    """Load the feature list of a GeoJSON FeatureCollection."""
    if isinstance(source, bytes):
        payload = json.loads(source.decode("utf-8"))
    else:
        with Path(source).open("r", encoding="utf-8") as f:
            payload = json.load(f)

    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        raise SourceLayoutError(
            "area",
            expected=["FeatureCollection.features"],
            found=sorted(payload) if isinstance(payload, dict) else [type(payload).__name__],
        )
    return features


def ring_area_m2(ring: Sequence[Sequence[float]]) -> float:
    """
    Area enclosed by a lon/lat ring on the sphere, in square metres.

    Line-integral approximation (Chamberlain & Duquette, 2007); exact
    enough for country outlines with dense vertices.
    """
    coords = np.asarray(ring, dtype=float)
    if coords.ndim != 2 or coords.shape[0] < 3:
        return 0.0

    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    lon_next = np.roll(lon, -1)
    lat_next = np.roll(lat, -1)

    total = np.sum((lon_next - lon) * (2.0 + np.sin(lat) + np.sin(lat_next)))
    return float(abs(total) * AUTHALIC_RADIUS_M**2 / 2.0)


def geometry_area_km2(geometry: Optional[Dict[str, Any]]) -> float:
    if not geometry:
        return 0.0

    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if geom_type == "Polygon":
        polygons = [coordinates]
    elif geom_type == "MultiPolygon":
        polygons = coordinates
    else:
        return 0.0

    area = 0.0
    for rings in polygons:
        if not rings:
            continue
        outer, holes = rings[0], rings[1:]
        area += ring_area_m2(outer) - sum(ring_area_m2(h) for h in holes)
    return max(area, 0.0) / 1e6


def _feature_code(properties: Dict[str, Any], code_properties: Iterable[str]) -> Optional[str]:
    for key in code_properties:
        value = properties.get(key)
        if isinstance(value, str) and _ISO3.match(value.strip().upper()):
            return value.strip().upper()
    return None


def build_area_dataframe(
    features: List[Dict[str, Any]],
    *,
    code_properties: Iterable[str] = CODE_PROPERTIES,
) -> pd.DataFrame:
    """Compute per-country area and its normalized variants."""
    keys = tuple(code_properties)
    rows = []
    for feature in features:
        properties = feature.get("properties") or {}
        rows.append(
            {
                "country_code": _feature_code(properties, keys),
                "area_km2": geometry_area_km2(feature.get("geometry")),
            }
        )

    df = pd.DataFrame(rows, columns=["country_code", "area_km2"])
    df = df.dropna(subset=["country_code"])
    df = df.groupby("country_code", as_index=False)["area_km2"].sum()

    dropped = int((df["area_km2"] <= 0).sum())
    if dropped:
        print(f"[area] dropping {dropped} countries with zero area")
    df = df[df["area_km2"] > 0].copy()

    area = df["area_km2"]
    spread = area.std()
    df["area_z"] = (area - area.mean()) / spread if spread > 0 else 0.0
    span = area.max() - area.min()
    df["area_scaled"] = (area - area.min()) / span if span > 0 else 0.0
    df["log_area"] = np.log(area)

    df["country_code"] = df["country_code"].astype("string")
    return df.sort_values("country_code").reset_index(drop=True)[AREA_COLUMNS]


__all__ = [
    "AUTHALIC_RADIUS_M",
    "CODE_PROPERTIES",
    "AREA_COLUMNS",
    "read_geometry_features",
    "ring_area_m2",
    "geometry_area_km2",
    "build_area_dataframe",
]
