"""
Inventory Core Library

Shared foundation for the inventory reconciliation tools:
- protocols: PersistenceGateway interface and well-known keys
- storage: JSON and SQLite gateway backends
"""

__version__ = "0.1.0"

from .protocols import WORKBOOK_KEY, PersistenceGateway, StorageError
from .storage import JSONStorage, SQLiteStorage, create_storage

__all__ = [
    "WORKBOOK_KEY",
    "PersistenceGateway",
    "StorageError",
    "JSONStorage",
    "SQLiteStorage",
    "create_storage",
]
