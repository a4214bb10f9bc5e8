"""
SQLite storage backend.

Stores snapshots and image blobs in a single SQLite file through SQLAlchemy:
- Single-file portability (copy one file off the device)
- Atomic snapshot replacement per transaction
- Offline operation

Suitable for single-user scenarios with many images.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import Integer, LargeBinary, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from src.core.protocols import StorageError

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1


class Base(DeclarativeBase):
    """Base for inventory storage tables."""


class SnapshotRow(Base):
    """Current snapshot per well-known key."""

    __tablename__ = "snapshots"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    payload: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[str] = mapped_column(String)


class BlobRow(Base):
    """Image blob keyed by filename."""

    __tablename__ = "blobs"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary)
    updated_at: Mapped[str] = mapped_column(String)


class SchemaVersionRow(Base):
    __tablename__ = "schema_version"

    version: Mapped[int] = mapped_column(Integer, primary_key=True)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStorage:
    """SQLite database storage for workbook snapshots and image blobs.

    Implements the PersistenceGateway protocol using SQLAlchemy.
    """

    def __init__(self, db_path: Path):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_engine(f"sqlite:///{self.db_path}")
        self._sessions = sessionmaker(bind=self._engine)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        Base.metadata.create_all(self._engine)
        with self._sessions() as session:
            row = session.execute(select(SchemaVersionRow)).scalars().first()
            if row is None:
                session.add(SchemaVersionRow(version=SCHEMA_VERSION))
                session.commit()
            elif row.version < SCHEMA_VERSION:
                logger.info(f"Migrating database from v{row.version} to v{SCHEMA_VERSION}")
                row.version = SCHEMA_VERSION
                session.commit()

    def _session(self) -> Session:
        return self._sessions()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get snapshot by key."""
        try:
            with self._session() as session:
                row = session.get(SnapshotRow, key)
                if row is None:
                    return None
                return json.loads(row.payload)
        except (SQLAlchemyError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read snapshot {key!r}: {e}") from e

    def put(self, key: str, snapshot: Dict[str, Any]) -> bool:
        """Replace snapshot stored under key."""
        try:
            payload = json.dumps(snapshot, ensure_ascii=False)
            with self._session() as session:
                session.merge(SnapshotRow(key=key, payload=payload, updated_at=_now()))
                session.commit()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error(f"Failed to save snapshot {key!r}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        """Delete snapshot. Returns True if existed."""
        return self._delete(SnapshotRow, key)

    def put_blob(self, name: str, data: bytes) -> bool:
        """Store image blob."""
        try:
            with self._session() as session:
                session.merge(BlobRow(name=name, data=data, updated_at=_now()))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save image {name!r}: {e}")
            return False
        return True

    def get_blob(self, name: str) -> Optional[bytes]:
        """Get image blob by filename."""
        try:
            with self._session() as session:
                row = session.get(BlobRow, name)
                return None if row is None else row.data
        except SQLAlchemyError as e:
            logger.warning(f"Failed to read image {name!r}: {e}")
            return None

    def list_blobs(self) -> List[str]:
        """List stored image filenames."""
        with self._session() as session:
            return list(session.execute(select(BlobRow.name).order_by(BlobRow.name)).scalars())

    def delete_blob(self, name: str) -> bool:
        """Delete image blob. Returns True if existed."""
        return self._delete(BlobRow, name)

    def _delete(self, model, key: str) -> bool:
        try:
            with self._session() as session:
                row = session.get(model, key)
                if row is None:
                    return False
                session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete {model.__tablename__} entry {key!r}: {e}")
            return False
        return True

    def close(self) -> None:
        """Dispose of the database engine."""
        self._engine.dispose()
