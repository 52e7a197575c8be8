"""Backup and restore of the whole store as one versioned document."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .exceptions import SnapshotError
from .store import Collection, DocumentStore, serialize_timestamp

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"
SUPPORTED_MAJOR = "1"

_FIELDS = {
    "categories": Collection.CATEGORIES,
    "products": Collection.PRODUCTS,
    "transactions": Collection.TRANSACTIONS,
}


def export_snapshot(store: DocumentStore) -> Dict[str, Any]:
    snapshot: Dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "exportDate": serialize_timestamp(),
    }
    for field, collection in _FIELDS.items():
        snapshot[field] = store.list(collection)
    return snapshot


def import_snapshot(store: DocumentStore, document: Mapping[str, Any]) -> bool:
    """Replace every collection present in ``document``.

    Collections missing from ``document`` are left untouched.  Records are
    stored as given.
    """

    ok = True
    with store.lock:
        for field, collection in _FIELDS.items():
            records = document.get(field)
            if records is None:
                continue
            if not store.save(collection, list(records)):
                ok = False
    logger.info(
        "Imported snapshot collections: %s",
        ", ".join(field for field in _FIELDS if document.get(field) is not None) or "none",
    )
    return ok


def clear_all(store: DocumentStore) -> bool:
    logger.warning("Clearing all stored documents")
    return store.clear_all()


def check_version(version: Any) -> None:
    """Accept snapshots without a version or with major version 1."""

    if version is None:
        return
    major = str(version).strip().split(".", 1)[0]
    if major != SUPPORTED_MAJOR:
        raise SnapshotError(f"Unsupported snapshot version {version!r}")


def parse_snapshot(content: str | bytes) -> Dict[str, Any]:
    """Decode and validate an uploaded snapshot document."""

    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SnapshotError("Snapshot file is not valid UTF-8") from exc
    try:
        document = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SnapshotError("Snapshot file is not valid JSON") from exc
    return validate_snapshot(document)


def validate_snapshot(document: Any) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise SnapshotError("Snapshot must be a JSON object")
    check_version(document.get("version"))
    for field in _FIELDS:
        value = document.get(field)
        if value is not None and not isinstance(value, list):
            raise SnapshotError(f"Snapshot field '{field}' must be a list")
    return document


def backup_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"stock-backup-{now.date().isoformat()}.json"


__all__ = [
    "SNAPSHOT_VERSION",
    "backup_filename",
    "check_version",
    "clear_all",
    "export_snapshot",
    "import_snapshot",
    "parse_snapshot",
    "validate_snapshot",
]
