"""
RAW downloads of the remote datasets.

Each source is fetched once with a plain GET (a failed download aborts
the run; there is no retry loop) and cached as raw bytes under
`raw/<source>/` in the configured storage. Later runs reuse the cached
copy unless `refresh=True`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from adapters import StorageAdapter

UN_POPULATION_URL = (
    "https://population.un.org/wpp/Download/Files/1_Indicators%20(Standard)/EXCEL_FILES/"
    "1_Population/WPP2019_POP_F01_1_TOTAL_POPULATION_BOTH_SEXES.xlsx"
)
PENN_WORLD_TABLE_URL = "https://www.rug.nl/ggdc/docs/pwt91.xlsx"
UCDP_ACD_URL = "http://ucdp.uu.se/downloads/ucdpprio/ucdp-prio-acd-191.csv"

RAW_BASE_PREFIX = "raw"


@dataclass(frozen=True)
class RemoteSource:
    """A remote file and the logical key its bytes are cached under."""

    name: str
    url: str
    filename: str

    @property
    def raw_key(self) -> str:
        return f"{RAW_BASE_PREFIX}/{self.name}/{self.filename}"


def fetch_bytes(
    url: str,
    *,
    timeout: int = 120,
    session: Optional[requests.Session] = None,
) -> bytes:
    """GET `url` and return the body; HTTP errors propagate."""
    client = session or requests
    response = client.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


def fetch_cached(
    source: RemoteSource,
    storage: StorageAdapter,
    *,
    refresh: bool = False,
    timeout: int = 120,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Return the raw bytes of `source`, downloading only when not cached."""
    if not refresh and storage.exists(source.raw_key):
        print(f"[{source.name}] using cached {source.raw_key}")
        return storage.read_raw(source.raw_key)

    print(f"[{source.name}] downloading {source.url}")
    content = fetch_bytes(source.url, timeout=timeout, session=session)
    location = storage.write_raw(source.raw_key, content)
    print(f"[{source.name}] cached {len(content)} bytes at {location}")
    return content


__all__ = [
    "UN_POPULATION_URL",
    "PENN_WORLD_TABLE_URL",
    "UCDP_ACD_URL",
    "RAW_BASE_PREFIX",
    "RemoteSource",
    "fetch_bytes",
    "fetch_cached",
]
