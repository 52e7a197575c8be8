import json

import pytest

from stock_qr.store import Collection, DocumentStore, generate_id, parse_timestamp


def test_upsert_product_defaults(store: DocumentStore) -> None:
    product = store.upsert(Collection.PRODUCTS, {"name": "Widget", "categoryId": "C1"})

    assert product is not None
    assert product["id"]
    assert product["qrCode"] == "PRD-" + product["id"]
    assert product["stock"] == 0
    assert product["totalIn"] == 0
    assert product["totalOut"] == 0
    assert product["minStock"] == 10
    assert parse_timestamp(product["createdAt"]) is not None
    assert store.list(Collection.PRODUCTS) == [product]


def test_upsert_merges_existing_record(store: DocumentStore) -> None:
    created = store.upsert(
        Collection.CATEGORIES, {"name": "Tools", "description": "Hand tools"}
    )
    updated = store.upsert(Collection.CATEGORIES, {"id": created["id"], "name": "Power tools"})

    assert updated["id"] == created["id"]
    assert updated["name"] == "Power tools"
    assert updated["description"] == "Hand tools"
    assert updated["createdAt"] == created["createdAt"]
    assert len(store.list(Collection.CATEGORIES)) == 1


def test_upsert_never_overwrites_stock_counters(store: DocumentStore) -> None:
    created = store.upsert(Collection.PRODUCTS, {"name": "Widget", "categoryId": "C1"})
    updated = store.upsert(
        Collection.PRODUCTS,
        {
            "id": created["id"],
            "name": "Gadget",
            "stock": 99,
            "totalIn": 99,
            "qrCode": "HACKED",
        },
    )

    assert updated["name"] == "Gadget"
    assert updated["stock"] == 0
    assert updated["totalIn"] == 0
    assert updated["qrCode"] == created["qrCode"]
    assert updated["updatedAt"]


def test_upsert_with_unknown_id_creates_new_record(store: DocumentStore) -> None:
    created = store.upsert(Collection.CATEGORIES, {"id": "missing", "name": "Tools"})

    assert created["id"] != "missing"
    assert store.find_by_id(Collection.CATEGORIES, created["id"]) == created


def test_upsert_reports_write_failure(storage, store: DocumentStore) -> None:
    storage.failing_keys.add(Collection.CATEGORIES.key)

    assert store.upsert(Collection.CATEGORIES, {"name": "Tools"}) is None
    assert store.list(Collection.CATEGORIES) == []


def test_remove_and_missing_id(store: DocumentStore) -> None:
    first = store.upsert(Collection.CATEGORIES, {"name": "A"})
    second = store.upsert(Collection.CATEGORIES, {"name": "B"})

    assert store.remove(Collection.CATEGORIES, "does-not-exist") is True
    assert store.remove(Collection.CATEGORIES, first["id"]) is True
    assert [c["id"] for c in store.list(Collection.CATEGORIES)] == [second["id"]]


def test_list_preserves_insertion_order(store: DocumentStore) -> None:
    names = ["first", "second", "third"]
    for name in names:
        store.upsert(Collection.CATEGORIES, {"name": name})

    assert [c["name"] for c in store.list(Collection.CATEGORIES)] == names


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"a": 1}), ""])
def test_list_treats_unreadable_documents_as_empty(storage, store: DocumentStore, raw: str) -> None:
    storage.set(Collection.PRODUCTS.key, raw)

    assert store.list(Collection.PRODUCTS) == []
    assert store.find_by_id(Collection.PRODUCTS, "x") is None


def test_find_by_field(store: DocumentStore) -> None:
    product = store.upsert(Collection.PRODUCTS, {"name": "Widget", "categoryId": "C1"})

    assert store.find_by(Collection.PRODUCTS, "qrCode", product["qrCode"]) == product
    assert store.find_by(Collection.PRODUCTS, "qrCode", "PRD-unknown") is None


def test_settings_blob_and_clear_all(storage, store: DocumentStore) -> None:
    assert store.load_settings() == {}
    assert store.save_settings({"currency": "SAR"}) is True
    store.upsert(Collection.CATEGORIES, {"name": "Tools"})

    assert store.load_settings() == {"currency": "SAR"}
    assert store.clear_all() is True
    assert storage.keys() == []
    assert store.load_settings() == {}


def test_generate_id_is_unique_enough() -> None:
    ids = {generate_id() for _ in range(500)}

    assert len(ids) == 500
