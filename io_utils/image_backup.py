"""Zip backups of stored image blobs."""

from __future__ import annotations

import logging
from pathlib import Path
from zipfile import ZipFile, ZIP_DEFLATED

from src.core.protocols import PersistenceGateway

logger = logging.getLogger(__name__)


def export_images(gateway: PersistenceGateway, archive_path: Path) -> int:
    """Write every stored image blob into ``archive_path``.

    Returns the number of images written; no archive is created when the
    store holds no images.
    """
    names = gateway.list_blobs()
    if not names:
        logger.info("No images to export")
        return 0
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with ZipFile(archive_path, "w", ZIP_DEFLATED) as zf:
        for name in names:
            data = gateway.get_blob(name)
            if data is None:
                logger.warning("Image %r vanished during export", name)
                continue
            zf.writestr(name, data)
            count += 1
    logger.info("Exported %d images to %s", count, archive_path)
    return count


def import_images(gateway: PersistenceGateway, archive_path: Path) -> int:
    """Store each file entry of ``archive_path`` as a blob keyed by its name."""
    count = 0
    with ZipFile(archive_path) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            name = Path(info.filename).name
            if gateway.put_blob(name, zf.read(info)):
                count += 1
            else:
                logger.warning("Image %r could not be imported", name)
    logger.info("Imported %d images from %s", count, archive_path)
    return count


__all__ = ["export_images", "import_images"]
