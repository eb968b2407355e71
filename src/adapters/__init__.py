"""
Adapters package
----------------

Storage abstraction so that raw downloads and panel artifacts can live
either on the local filesystem or in S3 while the loaders stay the same.
"""

from .storage import (  # noqa: F401
    LocalStorageAdapter,
    S3StorageAdapter,
    StorageAdapter,
)

__all__ = [
    "StorageAdapter",
    "LocalStorageAdapter",
    "S3StorageAdapter",
]
