"""Store implementations."""

from .base import SeenRecord, Store
from .sqlite_store import SQLiteStore

__all__ = ["SeenRecord", "Store", "SQLiteStore"]
