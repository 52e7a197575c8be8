"""JSON document store holding categories, products and transactions."""
from __future__ import annotations

import json
import logging
import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

from .storage import StoragePort

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

DEFAULT_QR_PREFIX = "PRD-"
DEFAULT_MIN_STOCK = 10

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_IMMUTABLE_FIELDS = frozenset({"id", "createdAt"})
_PRODUCT_LEDGER_FIELDS = frozenset({"qrCode", "stock", "totalIn", "totalOut"})


class Collection(str, Enum):
    """Persisted documents and the storage keys they live under."""

    CATEGORIES = "stock_qr_categories"
    PRODUCTS = "stock_qr_products"
    TRANSACTIONS = "stock_qr_transactions"
    SETTINGS = "stock_qr_settings"

    @property
    def key(self) -> str:
        return self.value


RECORD_COLLECTIONS = (Collection.CATEGORIES, Collection.PRODUCTS, Collection.TRANSACTIONS)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def serialize_timestamp(value: Optional[datetime] = None) -> str:
    value = value or _now()
    return value.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: List[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Millisecond timestamp followed by a random suffix, both in base 36.

    No uniqueness check is performed; with a single writer the collision
    probability is negligible.
    """

    timestamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(10))
    return timestamp + suffix


class DocumentStore:
    """CRUD over the persisted collections.

    Each write rewrites the complete collection document.  Storage and
    serialization faults are logged and reported through the return value,
    never raised.
    """

    def __init__(
        self,
        storage: StoragePort,
        *,
        qr_prefix: str = DEFAULT_QR_PREFIX,
        default_min_stock: int = DEFAULT_MIN_STOCK,
    ) -> None:
        self.storage = storage
        self.qr_prefix = qr_prefix
        self.default_min_stock = default_min_stock
        self.lock = RLock()

    # ------------------------------------------------------------------
    # Raw documents
    # ------------------------------------------------------------------
    def list(self, collection: Collection) -> List[Record]:
        raw = self.storage.get(collection.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Error reading data for %s: %s", collection.key, exc)
            return []
        if not isinstance(data, list):
            logger.error("Document %s is not a list, ignoring it", collection.key)
            return []
        return [record for record in data if isinstance(record, dict)]

    def save(self, collection: Collection, records: List[Record]) -> bool:
        try:
            payload = json.dumps(records, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error("Error serializing %s: %s", collection.key, exc)
            return False
        if not self.storage.set(collection.key, payload):
            logger.error("Error saving data for %s", collection.key)
            return False
        return True

    def load_raw(self, collection: Collection) -> Optional[str]:
        return self.storage.get(collection.key)

    def restore_raw(self, collection: Collection, raw: Optional[str]) -> bool:
        """Put back a document previously read with :meth:`load_raw`."""

        if raw is None:
            return self.storage.delete(collection.key)
        return self.storage.set(collection.key, raw)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------
    def find_by_id(self, collection: Collection, record_id: Any) -> Optional[Record]:
        return self.find_by(collection, "id", record_id)

    def find_by(self, collection: Collection, field: str, value: Any) -> Optional[Record]:
        if value is None:
            return None
        for record in self.list(collection):
            if record.get(field) == value:
                return record
        return None

    def upsert(self, collection: Collection, record: Mapping[str, Any]) -> Optional[Record]:
        """Patch the record with a matching ``id`` or insert a new one.

        Returns the stored record, or ``None`` when it could not be written.
        """

        with self.lock:
            records = self.list(collection)
            record_id = record.get("id")
            index = None
            if record_id:
                index = next(
                    (i for i, existing in enumerate(records) if existing.get("id") == record_id),
                    None,
                )
            if index is not None:
                merged = dict(records[index])
                merged.update(self._patch_fields(collection, record))
                if collection is Collection.PRODUCTS:
                    merged["updatedAt"] = serialize_timestamp()
                records[index] = merged
                result = merged
            else:
                result = self._new_record(collection, record)
                records.append(result)
            if not self.save(collection, records):
                return None
            return result

    def remove(self, collection: Collection, record_id: Any) -> bool:
        with self.lock:
            records = self.list(collection)
            remaining = [record for record in records if record.get("id") != record_id]
            if len(remaining) == len(records):
                return True
            return self.save(collection, remaining)

    def _patch_fields(self, collection: Collection, record: Mapping[str, Any]) -> Record:
        protected = _IMMUTABLE_FIELDS
        if collection is Collection.PRODUCTS:
            protected = protected | _PRODUCT_LEDGER_FIELDS
        return {key: value for key, value in record.items() if key not in protected}

    def _new_record(self, collection: Collection, record: Mapping[str, Any]) -> Record:
        created = dict(record)
        created["id"] = generate_id()
        now = serialize_timestamp()
        if collection is Collection.PRODUCTS:
            created["qrCode"] = self.qr_prefix + created["id"]
            created["stock"] = 0
            created["totalIn"] = 0
            created["totalOut"] = 0
            if created.get("minStock") in (None, ""):
                created["minStock"] = self.default_min_stock
            created["createdAt"] = now
        elif collection is Collection.TRANSACTIONS:
            created["timestamp"] = now
        else:
            created["createdAt"] = now
        return created

    # ------------------------------------------------------------------
    # Settings and housekeeping
    # ------------------------------------------------------------------
    def load_settings(self) -> Dict[str, Any]:
        raw = self.storage.get(Collection.SETTINGS.key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Error reading settings: %s", exc)
            return {}
        return data if isinstance(data, dict) else {}

    def save_settings(self, settings: Mapping[str, Any]) -> bool:
        try:
            payload = json.dumps(dict(settings), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error("Error serializing settings: %s", exc)
            return False
        return self.storage.set(Collection.SETTINGS.key, payload)

    def clear_all(self) -> bool:
        with self.lock:
            results = [self.storage.delete(collection.key) for collection in Collection]
        return all(results)


__all__ = [
    "Collection",
    "DEFAULT_MIN_STOCK",
    "DEFAULT_QR_PREFIX",
    "DocumentStore",
    "RECORD_COLLECTIONS",
    "Record",
    "generate_id",
    "parse_timestamp",
    "serialize_timestamp",
]
