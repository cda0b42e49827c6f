"""
Blob store for task attachments.

Two backends share the ``BlobStore`` interface:

  • ``DatabaseBlobStore`` — rows in the ``blobs`` table of the relational store
  • ``FilesystemBlobStore`` — one file per key under a root directory

Failures are logged and surfaced as ``DependencyError``; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import pathlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from database.models import Blob as BlobRow
from utils.errors import DependencyError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Blob:
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


class BlobStore(ABC):
    """Opaque key → bytes storage."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Blob]:
        """Return the blob, or ``None`` if the key is absent."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the key; absent keys are ignored."""
        ...


class DatabaseBlobStore(BlobStore):
    """Stores blobs in the ``blobs`` table using independent sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    BlobRow(
                        key=key,
                        data=data,
                        content_type=content_type or DEFAULT_CONTENT_TYPE,
                        size=len(data),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Blob put failed for %s", key)
            raise DependencyError() from exc

    async def get(self, key: str) -> Optional[Blob]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(BlobRow).where(BlobRow.key == key))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Blob get failed for %s", key)
            raise DependencyError() from exc
        if row is None:
            return None
        return Blob(data=row.data, content_type=row.content_type)

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(BlobRow).where(BlobRow.key == key))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Blob delete failed for %s", key)
            raise DependencyError() from exc


class FilesystemBlobStore(BlobStore):
    """Stores each key as a file below ``root``; I/O runs in a worker thread."""

    def __init__(self, root: str | pathlib.Path) -> None:
        self._root = pathlib.Path(root).resolve()

    def _path(self, key: str) -> pathlib.Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise DependencyError()
        return path

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self._path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            logger.exception("Blob put failed for %s", key)
            raise DependencyError() from exc

    async def get(self, key: str) -> Optional[Blob]:
        path = self._path(key)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.exception("Blob get failed for %s", key)
            raise DependencyError() from exc
        content_type, _ = mimetypes.guess_type(path.name)
        return Blob(data=data, content_type=content_type or DEFAULT_CONTENT_TYPE)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.exception("Blob delete failed for %s", key)
            raise DependencyError() from exc


def build_blob_store(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> BlobStore:
    if settings.blob_backend == "filesystem":
        logger.info("Attachments stored on disk under %s", settings.blob_dir)
        return FilesystemBlobStore(settings.blob_dir)
    if settings.blob_backend != "database":
        raise ValueError(f"Unknown blob backend: {settings.blob_backend!r}")
    return DatabaseBlobStore(session_factory)
