"""Append-only history of computed estimates.

Records are plain dicts shaped like::

    {"id": str, "created_at": iso8601, "client_name": str | None,
     "params": <submitted payload>, "estimate": <estimate dict>}

Stores keep them newest first and never edit or delete an entry. Reads
degrade to an empty history; writes raise :class:`RecordStoreError`.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config import Base, Settings
from models import EstimateRecord

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

DEFAULT_LIMIT = 50


class RecordStoreError(RuntimeError):
    """Raised when an estimate record could not be persisted."""


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


class RecordStore(Protocol):
    def append(self, record: Record) -> None:
        ...

    def list_recent(self, limit: int = DEFAULT_LIMIT) -> List[Record]:
        ...

    def get(self, record_id: str) -> Optional[Record]:
        ...


class SqlRecordStore:
    """SQLAlchemy-backed store; one row per estimate."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        self._lock = threading.Lock()
        self._schema_ready = False

    @classmethod
    def from_url(cls, url: str) -> "SqlRecordStore":
        return cls(create_engine(url, future=True))

    def append(self, record: Record) -> None:
        row = EstimateRecord(
            id=record["id"],
            created_at=parse_timestamp(record["created_at"]),
            client_name=record.get("client_name"),
            params=record.get("params"),
            estimate=record.get("estimate"),
        )
        with self._lock:
            try:
                self._ensure_schema()
                with self._sessions() as session, session.begin():
                    session.add(row)
            except (SQLAlchemyError, OSError) as exc:
                logger.error("Failed to save estimate record", extra={"record_id": record["id"]})
                raise RecordStoreError(f"Could not save estimate {record['id']}: {exc}") from exc

    def list_recent(self, limit: int = DEFAULT_LIMIT) -> List[Record]:
        stmt = select(EstimateRecord).order_by(EstimateRecord.row_id.desc()).limit(limit)
        try:
            self._ensure_schema()
            with self._sessions() as session:
                return [self._to_record(row) for row in session.scalars(stmt)]
        except (SQLAlchemyError, OSError):
            logger.warning("Estimate history unavailable", exc_info=True)
            return []

    def get(self, record_id: str) -> Optional[Record]:
        stmt = select(EstimateRecord).where(EstimateRecord.id == record_id)
        try:
            self._ensure_schema()
            with self._sessions() as session:
                row = session.scalars(stmt).first()
        except (SQLAlchemyError, OSError):
            logger.warning("Estimate lookup failed", exc_info=True, extra={"record_id": record_id})
            return None
        return self._to_record(row) if row is not None else None

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        url = self._engine.url
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(self._engine)
        self._schema_ready = True

    @staticmethod
    def _to_record(row: EstimateRecord) -> Record:
        return {
            "id": row.id,
            "created_at": format_timestamp(row.created_at),
            "client_name": row.client_name,
            "params": row.params,
            "estimate": row.estimate,
        }


class JsonFileRecordStore:
    """Whole history kept as one JSON array in a file, newest first.

    Every append rewrites the file, so only one process may write to it.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def append(self, record: Record) -> None:
        with self._lock:
            items = self._read()
            items.insert(0, record)
            try:
                self._write(items)
            except (OSError, TypeError, ValueError) as exc:
                logger.error("Failed to save estimate record", extra={"record_id": record.get("id")})
                raise RecordStoreError(f"Could not write {self._path}: {exc}") from exc

    def list_recent(self, limit: int = DEFAULT_LIMIT) -> List[Record]:
        return self._read()[:limit]

    def get(self, record_id: str) -> Optional[Record]:
        for item in self._read():
            if isinstance(item, dict) and item.get("id") == record_id:
                return item
        return None

    def _read(self) -> List[Record]:
        if not self._path.exists():
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text or "[]")
        except (OSError, ValueError):
            logger.warning("Could not read %s, treating history as empty", self._path, exc_info=True)
            return []
        if not isinstance(data, list):
            logger.warning("Unexpected content in %s, treating history as empty", self._path)
            return []
        return data

    def _write(self, items: List[Record]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".estimates-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(items, fp, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


def build_record_store(settings: Settings) -> RecordStore:
    backend = settings.store_backend
    if backend == "json":
        return JsonFileRecordStore(settings.estimates_file)
    if backend == "sql":
        return SqlRecordStore.from_url(settings.resolved_database_url)
    raise ValueError(f"Unknown QUICKBID_STORE backend: {backend!r}")
