"""Persisted photo and result stores.

Each store is its own SQLite database under ``settings.storage_dir`` with its
own schema version (``PRAGMA user_version``). ``open`` is idempotent and
creates the table on first use. Blocking SQLAlchemy calls run in the
threadpool; storage errors propagate to the caller unchanged.
"""
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import JSON, BigInteger, Column, LargeBinary, String, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base

from ..config import settings


logger = structlog.get_logger("fitmirror")

PHOTOS_DB_VERSION = 1
RESULTS_DB_VERSION = 1
LATEST_KEY = "latest"

PhotoBase = declarative_base()
ResultsBase = declarative_base()


class PhotoRow(PhotoBase):
    __tablename__ = "photos"

    angle = Column(String, primary_key=True)
    data = Column(LargeBinary, nullable=False)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    filename = Column(String, nullable=True)
    saved_at = Column(BigInteger, nullable=False)


class ResultRow(ResultsBase):
    __tablename__ = "results"

    id = Column(String, primary_key=True)
    results = Column(JSON, nullable=False)
    saved_at = Column(BigInteger, nullable=False)


@dataclass
class PhotoRecord:
    angle: str
    data: bytes
    content_type: str
    filename: Optional[str]
    saved_at: int


def _now_ms() -> int:
    return int(time.time() * 1000)


class _SQLiteStore:
    base: Any = None
    version: int = 1

    def __init__(self, path: str) -> None:
        self.path = path
        self._engine: Optional[Engine] = None

    def _open(self) -> Engine:
        if self._engine is not None:
            return self._engine
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        engine = create_engine(f"sqlite:///{self.path}", connect_args={"check_same_thread": False})
        self.base.metadata.create_all(engine)
        with engine.begin() as conn:
            current = conn.execute(text("PRAGMA user_version")).scalar() or 0
            if current < self.version:
                conn.execute(text(f"PRAGMA user_version = {int(self.version)}"))
                logger.info("store_upgraded", path=self.path, old_version=current, version=self.version)
        self._engine = engine
        return engine

    async def open(self) -> None:
        await run_in_threadpool(self._open)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class PhotoStore(_SQLiteStore):
    base = PhotoBase
    version = PHOTOS_DB_VERSION

    def _save(self, angle: str, data: bytes, content_type: str, filename: Optional[str]) -> None:
        with Session(self._open()) as session:
            session.merge(PhotoRow(angle=angle, data=data, content_type=content_type, filename=filename, saved_at=_now_ms()))
            session.commit()

    def _get(self, angle: str) -> Optional[PhotoRecord]:
        with Session(self._open()) as session:
            row = session.get(PhotoRow, angle)
            return _to_record(row) if row else None

    def _get_all(self) -> Dict[str, PhotoRecord]:
        with Session(self._open()) as session:
            return {row.angle: _to_record(row) for row in session.query(PhotoRow).all()}

    def _clear(self) -> None:
        with Session(self._open()) as session:
            session.query(PhotoRow).delete()
            session.commit()

    async def save(self, angle: str, data: bytes, content_type: str = "application/octet-stream", filename: Optional[str] = None) -> None:
        await run_in_threadpool(self._save, angle, data, content_type, filename)
        logger.info("photo_saved", angle=angle, size=len(data))

    async def get(self, angle: str) -> Optional[PhotoRecord]:
        return await run_in_threadpool(self._get, angle)

    async def get_all(self) -> Dict[str, PhotoRecord]:
        return await run_in_threadpool(self._get_all)

    async def clear(self) -> None:
        await run_in_threadpool(self._clear)
        logger.info("photos_cleared")


def _to_record(row: PhotoRow) -> PhotoRecord:
    return PhotoRecord(
        angle=row.angle,
        data=row.data,
        content_type=row.content_type,
        filename=row.filename,
        saved_at=row.saved_at,
    )


class ResultsStore(_SQLiteStore):
    base = ResultsBase
    version = RESULTS_DB_VERSION

    def _save(self, results: List[Dict[str, Any]]) -> None:
        with Session(self._open()) as session:
            session.merge(ResultRow(id=LATEST_KEY, results=results, saved_at=_now_ms()))
            session.commit()

    def _get(self) -> Optional[Dict[str, Any]]:
        with Session(self._open()) as session:
            row = session.get(ResultRow, LATEST_KEY)
            if row is None:
                return None
            return {"results": row.results, "savedAt": row.saved_at}

    async def save(self, results: List[Dict[str, Any]]) -> None:
        await run_in_threadpool(self._save, results)
        logger.info("results_saved", count=len(results))

    async def get(self) -> Optional[Dict[str, Any]]:
        return await run_in_threadpool(self._get)


photo_store = PhotoStore(os.path.join(settings.storage_dir, "photos.db"))
results_store = ResultsStore(os.path.join(settings.storage_dir, "results.db"))


def get_photo_store() -> PhotoStore:
    return photo_store


def get_results_store() -> ResultsStore:
    return results_store
