"""
Storage backends for inventory snapshots and image blobs.

Provides pluggable gateway implementations:
- JSONStorage: File-based JSON (development/single device)
- SQLiteStorage: SQLite database via SQLAlchemy (single device, offline)

All backends implement the PersistenceGateway protocol.

Usage:
    from src.core.storage import JSONStorage, create_storage

    # Direct instantiation
    storage = JSONStorage(Path("./data"))

    # Factory with config
    storage = create_storage("sqlite", {"path": "./data/inventory.db"})
"""

from pathlib import Path

from .json_storage import JSONStorage
from .sqlite_storage import SQLiteStorage

__all__ = [
    "JSONStorage",
    "SQLiteStorage",
    "create_storage",
]


def create_storage(backend: str, config: dict):
    """Factory function to create storage backend.

    Args:
        backend: Storage type ("json", "sqlite")
        config: Backend-specific configuration

    Returns:
        Storage instance implementing PersistenceGateway protocol

    Raises:
        ValueError: If backend type is unknown
    """
    if backend == "json":
        image_dir = config.get("image_dir")
        return JSONStorage(
            data_dir=Path(config.get("path", "./data")),
            image_dir=Path(image_dir) if image_dir else None,
        )
    elif backend == "sqlite":
        path = Path(config.get("path", "./data"))
        if path.suffix != ".db":
            path = path / "inventory.db"
        return SQLiteStorage(db_path=path)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
