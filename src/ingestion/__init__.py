"""
Ingestion layer
---------------

Downloads of the remote datasets, cached as raw bytes in storage.
"""

from .sources import (  # noqa: F401
    PENN_WORLD_TABLE_URL,
    UCDP_ACD_URL,
    UN_POPULATION_URL,
    RemoteSource,
    fetch_bytes,
    fetch_cached,
)

__all__ = [
    "UN_POPULATION_URL",
    "PENN_WORLD_TABLE_URL",
    "UCDP_ACD_URL",
    "RemoteSource",
    "fetch_bytes",
    "fetch_cached",
]
