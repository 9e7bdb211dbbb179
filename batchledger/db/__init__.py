"""SQLite storage for the transaction log and the store catalog."""

from .catalog import SqliteProductCatalog
from .events import SqliteEventStore
from .schema import ensure_schema

__all__ = [
    "SqliteEventStore",
    "SqliteProductCatalog",
    "ensure_schema",
]
