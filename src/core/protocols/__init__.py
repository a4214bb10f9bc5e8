"""
Protocol interfaces for inventory persistence.

Uses typing.Protocol for structural subtyping - gateways don't need to
inherit, they just need to implement the required methods.

## PersistenceGateway Protocol

Durable key-value store for workbook snapshots and image blobs.

Snapshot methods:
- `get(key: str) -> Optional[Dict]` - stored snapshot payload, None if absent
- `put(key: str, snapshot: Dict) -> bool` - full replacement, False on I/O failure
- `delete(key: str) -> bool` - True if the key existed and was removed

Blob methods (image namespace, keyed by filename):
- `put_blob(name: str, data: bytes) -> bool`
- `get_blob(name: str) -> Optional[bytes]`
- `list_blobs() -> List[str]`
- `delete_blob(name: str) -> bool`

Implementation notes:
- `put` never merges: the previous snapshot under `key` is replaced whole.
- `get` raises StorageError when a stored snapshot cannot be read or decoded;
  a missing key is not an error and returns None.
- Write failures are logged and reported through the boolean result.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

# Well-known key of the current workbook snapshot.
WORKBOOK_KEY = "inventory:workbook"


class StorageError(Exception):
    """Raised when persisted data exists but cannot be read."""


@runtime_checkable
class PersistenceGateway(Protocol):
    """Protocol for snapshot and image blob storage backends."""

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the snapshot stored under ``key``."""
        ...

    def put(self, key: str, snapshot: Dict[str, Any]) -> bool:
        """Replace the snapshot stored under ``key``."""
        ...

    def delete(self, key: str) -> bool:
        """Delete the snapshot stored under ``key``."""
        ...

    def put_blob(self, name: str, data: bytes) -> bool:
        """Store an image blob."""
        ...

    def get_blob(self, name: str) -> Optional[bytes]:
        """Return an image blob or None."""
        ...

    def list_blobs(self) -> List[str]:
        """Return stored blob names, sorted."""
        ...

    def delete_blob(self, name: str) -> bool:
        """Delete an image blob. Returns True if existed."""
        ...


__all__ = ["WORKBOOK_KEY", "StorageError", "PersistenceGateway"]
