"""
JSON file-based storage backend.

Stores inventory data as plain files:
- Snapshots: one JSON document per key (<data_dir>/<key>.json)
- Image blobs: raw bytes under <data_dir>/images/<filename>

Suitable for development and single-device scenarios.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.core.protocols import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_KEY = re.compile(r"[^A-Za-z0-9._-]")


class JSONStorage:
    """JSON file-based storage for workbook snapshots and image blobs.

    Implements the PersistenceGateway protocol using the filesystem.
    Snapshot writes go to a temporary file that is then renamed over the
    previous snapshot, so a reader never sees a half-written document.
    """

    def __init__(self, data_dir: Path, image_dir: Optional[Path] = None):
        """Initialize JSON storage.

        Args:
            data_dir: Directory for snapshot files
            image_dir: Directory for image blobs (default: data_dir/images)
        """
        self.data_dir = Path(data_dir)
        self.image_dir = Path(image_dir) if image_dir else self.data_dir / "images"

        # Ensure directories exist
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.image_dir.mkdir(parents=True, exist_ok=True)

    def _snapshot_path(self, key: str) -> Path:
        return self.data_dir / f"{_UNSAFE_KEY.sub('_', key)}.json"

    def _blob_path(self, name: str) -> Path:
        # Filenames come from user archives; keep them inside image_dir.
        return self.image_dir / Path(name).name

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get snapshot by key."""
        path = self._snapshot_path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read snapshot {key!r}: {e}") from e

    def put(self, key: str, snapshot: Dict[str, Any]) -> bool:
        """Replace snapshot stored under key."""
        path = self._snapshot_path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save snapshot {key!r}: {e}")
            return False
        logger.debug(f"Saved snapshot {key!r} to {path}")
        return True

    def delete(self, key: str) -> bool:
        """Delete snapshot. Returns True if existed."""
        path = self._snapshot_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete snapshot {key!r}: {e}")
            return False
        return True

    def put_blob(self, name: str, data: bytes) -> bool:
        """Store image blob."""
        try:
            self._blob_path(name).write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to save image {name!r}: {e}")
            return False
        return True

    def get_blob(self, name: str) -> Optional[bytes]:
        """Get image blob by filename."""
        path = self._blob_path(name)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read image {name!r}: {e}")
            return None

    def list_blobs(self) -> List[str]:
        """List stored image filenames."""
        return sorted(p.name for p in self.image_dir.iterdir() if p.is_file())

    def delete_blob(self, name: str) -> bool:
        """Delete image blob. Returns True if existed."""
        try:
            self._blob_path(name).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete image {name!r}: {e}")
            return False
        return True

    def close(self) -> None:
        """Nothing to release for file storage."""
