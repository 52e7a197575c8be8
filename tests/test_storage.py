from pathlib import Path

import pytest

from stock_qr.config import Settings
from stock_qr.database import create_engine
from stock_qr.inventory import InventoryManager
from stock_qr.management import dump_snapshot, load_snapshot
from stock_qr.storage import JsonFileStorage, MemoryStorage, SqlStorage, create_storage
from stock_qr.store import Collection, DocumentStore


def _sql_storage(tmp_path: Path) -> SqlStorage:
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'stock.db'}", environment="test")
    return SqlStorage(create_engine(settings))


@pytest.fixture(params=["memory", "file", "sql"])
def backend(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryStorage()
    if request.param == "file":
        return JsonFileStorage(tmp_path / "data")
    return _sql_storage(tmp_path)


def test_backend_get_set_delete(backend) -> None:
    assert backend.get("stock_qr_products") is None
    assert backend.set("stock_qr_products", "[]") is True
    assert backend.set("stock_qr_products", '[{"id": "a"}]') is True
    assert backend.get("stock_qr_products") == '[{"id": "a"}]'
    assert backend.delete("stock_qr_products") is True
    assert backend.delete("stock_qr_products") is True
    assert backend.get("stock_qr_products") is None


def test_file_storage_persists_across_instances(tmp_path: Path) -> None:
    directory = tmp_path / "data"
    manager = InventoryManager(DocumentStore(JsonFileStorage(directory)))
    category = manager.save_category({"name": "Tools"})

    reopened = InventoryManager(DocumentStore(JsonFileStorage(directory)))

    assert reopened.get_category(category["id"])["name"] == "Tools"
    assert (directory / "stock_qr_categories.json").exists()
    assert not (directory / "stock_qr_categories.tmp").exists()


def test_file_storage_reports_write_failures(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    storage = JsonFileStorage(blocker / "data")
    store = DocumentStore(storage)

    assert store.upsert(Collection.CATEGORIES, {"name": "Tools"}) is None
    assert store.list(Collection.CATEGORIES) == []


def test_sql_storage_persists_across_instances(tmp_path: Path) -> None:
    store = DocumentStore(_sql_storage(tmp_path))
    product = store.upsert(Collection.PRODUCTS, {"name": "Widget", "categoryId": "C1"})

    reopened = DocumentStore(_sql_storage(tmp_path))

    assert reopened.find_by_id(Collection.PRODUCTS, product["id"]) == product


def test_create_storage_follows_settings(tmp_path: Path) -> None:
    assert isinstance(create_storage(Settings(storage_backend="memory")), MemoryStorage)
    file_storage = create_storage(Settings(storage_backend="file", data_dir=tmp_path))
    assert isinstance(file_storage, JsonFileStorage)
    assert file_storage.directory == tmp_path
    sql_settings = Settings(
        storage_backend="sql", database_url=f"sqlite:///{tmp_path / 'stock.db'}"
    )
    assert isinstance(create_storage(sql_settings), SqlStorage)


def test_dump_and_load_snapshot_files(tmp_path: Path, manager: InventoryManager, product: dict) -> None:
    manager.stock_in(product["id"], 3)

    path = dump_snapshot(manager, tmp_path)
    assert path.name.startswith("stock-backup-")

    restored = InventoryManager(DocumentStore(MemoryStorage()))
    load_snapshot(restored, path)

    assert restored.get_product(product["id"])["stock"] == 3
    assert len(restored.list_transactions()) == 1
