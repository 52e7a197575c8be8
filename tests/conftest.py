from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Iterable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from stock_qr.api import create_app
from stock_qr.config import Settings
from stock_qr.inventory import InventoryManager
from stock_qr.storage import MemoryStorage
from stock_qr.store import DocumentStore


class FlakyStorage(MemoryStorage):
    """Memory storage whose writes to selected keys fail."""

    def __init__(self, failing_keys: Iterable[str] = ()) -> None:
        super().__init__()
        self.failing_keys = set(failing_keys)

    def set(self, key: str, value: str) -> bool:
        if key in self.failing_keys:
            return False
        return super().set(key, value)


@pytest.fixture()
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture()
def store(storage: FlakyStorage) -> DocumentStore:
    return DocumentStore(storage)


@pytest.fixture()
def manager(store: DocumentStore) -> InventoryManager:
    return InventoryManager(store)


@pytest.fixture()
def category(manager: InventoryManager) -> dict:
    return manager.save_category({"name": "Tools", "description": "Hand tools"})


@pytest.fixture()
def product(manager: InventoryManager, category: dict) -> dict:
    return manager.save_product({"name": "Hammer", "categoryId": category["id"], "barcode": "HM-01"})


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="test",
        storage_backend="memory",
        app_name="Test Stock QR",
    )


@pytest.fixture()
async def app(settings: Settings, manager: InventoryManager) -> AsyncIterator[FastAPI]:
    yield create_app(settings, manager=manager)


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
