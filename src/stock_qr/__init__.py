"""Inventory tracking with QR code scanning."""
from __future__ import annotations

from .inventory import InventoryManager
from .ledger import Movement, StockLedger
from .scan import ScanResolver, ScanSession
from .storage import JsonFileStorage, MemoryStorage, SqlStorage
from .store import Collection, DocumentStore

__all__ = [
    "Collection",
    "DocumentStore",
    "InventoryManager",
    "JsonFileStorage",
    "MemoryStorage",
    "Movement",
    "ScanResolver",
    "ScanSession",
    "SqlStorage",
    "StockLedger",
    "create_app",
]


def create_app(*args, **kwargs):
    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)
