"""
Certificate stores for serving and hot-swapping TLS certificates.
"""

from .base import Reloadable, Store
from .file_store import FileStore
from .multi_store import MultiStore

__all__ = [
    "Reloadable",
    "Store",
    "FileStore",
    "MultiStore"
]
