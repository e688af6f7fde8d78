"""Durable append-only log of connectivity transitions backed by SQLite."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, List, Optional, Union

from sqlalchemy import create_engine, event, inspect, literal_column, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from netpinger.models.db_models import Base, RecordRow
from netpinger.models.record import Record

logger = logging.getLogger(__name__)

# Insertion order breaks ties between records sharing a timestamp.
_ROWID = literal_column("records.rowid")


class RecordStoreError(RuntimeError):
    """Raised when the store cannot read or persist records."""


class DuplicateRecordError(RecordStoreError):
    """Raised when a record id is already present in the store."""


def _on_connect(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON;")
        cursor.execute("PRAGMA busy_timeout = 5000;")
        cursor.execute("PRAGMA journal_mode = WAL;")
    finally:
        cursor.close()


class RecordStore:
    """Record persistence safe for one writer and concurrent readers.

    Writes are serialised by a process-local lock; readers use their own
    sessions and rely on SQLite's WAL mode to see committed rows only.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)
        options: dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        if self.path == ":memory:":
            options["poolclass"] = StaticPool
        else:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(f"sqlite:///{self.path}", **options)
        event.listen(self.engine, "connect", _on_connect)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.Lock()

    def migrate(self) -> bool:
        """Create the schema if needed. Returns True when tables were created."""
        existed = inspect(self.engine).has_table(RecordRow.__tablename__)
        Base.metadata.create_all(self.engine)
        return not existed

    def create_record(self, record: Record) -> None:
        row = RecordRow.from_record(record)
        with self._lock:
            with self._sessions() as session:
                session.add(row)
                try:
                    session.commit()
                except IntegrityError as exc:
                    session.rollback()
                    raise DuplicateRecordError(f"record {record.id} already exists") from exc
                except SQLAlchemyError as exc:
                    session.rollback()
                    raise RecordStoreError(f"failed to persist record {record.id}: {exc}") from exc
        logger.debug("Persisted record %s (failure=%s)", record.id, record.failure)

    def list_records(self) -> List[Record]:
        """Return every record, oldest first."""
        stmt = select(RecordRow).order_by(RecordRow.ts.asc(), _ROWID.asc())
        try:
            with self._sessions() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"failed to list records: {exc}") from exc
        return [row.to_record() for row in rows]

    def get_most_recent_failure(self) -> Optional[Record]:
        stmt = (
            select(RecordRow)
            .where(RecordRow.failure == 1)
            .order_by(RecordRow.ts.desc(), _ROWID.desc())
            .limit(1)
        )
        return self._first(stmt)

    def get_latest_record(self) -> Optional[Record]:
        stmt = select(RecordRow).order_by(RecordRow.ts.desc(), _ROWID.desc()).limit(1)
        return self._first(stmt)

    def close(self) -> None:
        self.engine.dispose()

    def _first(self, stmt: Any) -> Optional[Record]:
        try:
            with self._sessions() as session:
                row = session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"failed to query records: {exc}") from exc
        return row.to_record() if row is not None else None


def open_store(path: Union[str, Path]) -> RecordStore:
    """Open the store at ``path`` and bring its schema up to date."""
    store = RecordStore(path)
    if store.migrate():
        logger.info("Database schema created at %s", path)
    else:
        logger.info("Database has no pending migrations")
    return store


__all__ = ["RecordStore", "RecordStoreError", "DuplicateRecordError", "open_store"]
