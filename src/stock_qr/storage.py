"""Key addressed document storage backends.

Every backend maps a string key to a JSON text document.  Backends never raise
for I/O problems: reads of a missing or unreadable document return ``None``
and failed writes return ``False`` after logging the fault.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from threading import RLock
from typing import Dict, Optional, Protocol, runtime_checkable

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .database import create_engine, create_session_factory, init_database
from .models import StoredDocument

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class StoragePort(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...

    def delete(self, key: str) -> bool:
        ...


class MemoryStorage:
    """Dictionary backed storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._documents: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._documents.get(key)

    def set(self, key: str, value: str) -> bool:
        self._documents[key] = value
        return True

    def delete(self, key: str) -> bool:
        self._documents.pop(key, None)
        return True

    def keys(self) -> list[str]:
        return list(self._documents)


class JsonFileStorage:
    """Stores each document as ``<directory>/<key>.json``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self._lock = RLock()

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.error("Error reading %s: %s", path, exc)
                return None

    def set(self, key: str, value: str) -> bool:
        path = self._path_for(key)
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                temp_path = path.with_suffix(".tmp")
                temp_path.write_text(value, encoding="utf-8")
                temp_path.replace(path)
            except OSError as exc:
                logger.error("Error writing %s: %s", path, exc)
                return False
        return True

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.error("Error removing %s: %s", path, exc)
                return False
        return True


class SqlStorage:
    """Stores each document as a row of the ``documents`` table."""

    def __init__(self, engine: Engine, *, create_tables: bool = True) -> None:
        self.engine = engine
        self._session_factory = create_session_factory(engine)
        if create_tables:
            init_database(engine)

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                document = session.get(StoredDocument, key)
                return None if document is None else document.value
        except SQLAlchemyError as exc:
            logger.error("Error reading document %s: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> bool:
        try:
            with self._session_factory.begin() as session:
                document = session.get(StoredDocument, key)
                if document is None:
                    session.add(StoredDocument(key=key, value=value))
                else:
                    document.value = value
        except SQLAlchemyError as exc:
            logger.error("Error writing document %s: %s", key, exc)
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            with self._session_factory.begin() as session:
                document = session.get(StoredDocument, key)
                if document is not None:
                    session.delete(document)
        except SQLAlchemyError as exc:
            logger.error("Error removing document %s: %s", key, exc)
            return False
        return True


def create_storage(settings: Settings | None = None) -> StoragePort:
    """Build the storage backend selected by ``settings.storage_backend``."""

    settings = settings or get_settings()
    if settings.storage_backend == "memory":
        return MemoryStorage()
    if settings.storage_backend == "sql":
        return SqlStorage(create_engine(settings))
    return JsonFileStorage(settings.data_dir)


__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "SqlStorage",
    "StoragePort",
    "create_storage",
]
