from __future__ import annotations

import json
from typing import Any, Dict

from httpx import AsyncClient

from stock_qr.store import Collection


async def _create_product(client: AsyncClient, **overrides: Any) -> Dict[str, Any]:
    category = await client.post("/categories", json={"name": "Tools"})
    assert category.status_code == 201
    payload = {"name": "Hammer", "categoryId": category.json()["id"], "barcode": "HM-01"}
    payload.update(overrides)
    response = await client.post("/products", json=payload)
    assert response.status_code == 201
    return response.json()


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environment": "test"}


async def test_category_crud(client: AsyncClient) -> None:
    created = await client.post("/categories", json={"name": " Tools ", "description": "Hand"})
    assert created.status_code == 201
    category = created.json()
    assert category["name"] == "Tools"
    assert category["createdAt"]

    updated = await client.put(f"/categories/{category['id']}", json={"name": "Workshop"})
    assert updated.status_code == 200
    assert updated.json()["description"] == "Hand"

    listed = await client.get("/categories")
    assert [c["name"] for c in listed.json()] == ["Workshop"]

    assert (await client.post("/categories", json={"name": "  "})).status_code == 400
    assert (await client.put("/categories/missing", json={"name": "x"})).status_code == 404

    deleted = await client.delete(f"/categories/{category['id']}")
    assert deleted.status_code == 204
    assert (await client.get("/categories")).json() == []


async def test_delete_category_in_use(client: AsyncClient) -> None:
    product = await _create_product(client)

    response = await client.delete(f"/categories/{product['categoryId']}")

    assert response.status_code == 400
    categories = (await client.get("/categories")).json()
    assert categories[0]["productCount"] == 1


async def test_product_crud_and_search(client: AsyncClient) -> None:
    product = await _create_product(client, minStock=3, price=9.5)
    assert product["qrCode"] == "PRD-" + product["id"]
    assert product["stock"] == 0
    assert product["minStock"] == 3
    assert product["lowStock"] is True

    fetched = await client.get(f"/products/{product['id']}")
    assert fetched.json()["price"] == 9.5

    updated = await client.put(f"/products/{product['id']}", json={"name": "Sledge"})
    assert updated.json()["name"] == "Sledge"
    assert updated.json()["barcode"] == "HM-01"

    found = await client.get("/products", params={"search": "sled"})
    assert [p["id"] for p in found.json()] == [product["id"]]
    filtered = await client.get("/products", params={"categoryId": "other"})
    assert filtered.json() == []

    bad = await client.post("/products", json={"name": "X", "categoryId": "missing"})
    assert bad.status_code == 400

    assert (await client.delete(f"/products/{product['id']}")).status_code == 204
    assert (await client.get(f"/products/{product['id']}")).status_code == 404


async def test_stock_movements(client: AsyncClient) -> None:
    product = await _create_product(client)

    stock_in = await client.post(
        "/inventory/stock-in",
        json={"productId": product["id"], "quantity": 5, "notes": "delivery"},
    )
    assert stock_in.status_code == 201
    body = stock_in.json()
    assert body["product"]["stock"] == 5
    assert body["transaction"]["type"] == "in"
    assert body["transaction"]["productName"] == "Hammer"

    too_many = await client.post(
        "/inventory/stock-out", json={"productId": product["id"], "quantity": 10}
    )
    assert too_many.status_code == 400

    stock_out = await client.post(
        "/inventory/stock-out", json={"productId": product["id"], "quantity": 2}
    )
    assert stock_out.json()["product"]["stock"] == 3

    invalid = await client.post("/inventory/stock-in", json={"productId": product["id"], "quantity": 0})
    assert invalid.status_code == 422
    missing = await client.post("/inventory/stock-in", json={"productId": "missing", "quantity": 1})
    assert missing.status_code == 404

    transactions = await client.get("/inventory/transactions")
    assert [t["type"] for t in transactions.json()] == ["out", "in"]
    outbound = await client.get("/inventory/transactions", params={"type": "out"})
    assert [t["quantity"] for t in outbound.json()] == [2]

    stats = (await client.get("/inventory/stats")).json()
    assert stats["totalStockIn"] == 5
    assert stats["totalStockOut"] == 2
    assert stats["totalRecords"] == 4

    low = await client.get("/inventory/low-stock")
    assert [p["id"] for p in low.json()] == [product["id"]]


async def test_storage_failure_returns_503(client: AsyncClient, storage) -> None:
    product = await _create_product(client)
    storage.failing_keys.add(Collection.TRANSACTIONS.key)

    response = await client.post(
        "/inventory/stock-in", json={"productId": product["id"], "quantity": 1}
    )

    assert response.status_code == 503
    assert (await client.get(f"/products/{product['id']}")).json()["stock"] == 0


async def test_scan_and_qr(client: AsyncClient) -> None:
    product = await _create_product(client)

    payload = (await client.get(f"/products/{product['id']}/qr-payload")).json()["payload"]
    assert json.loads(payload)["id"] == product["id"]

    resolved = await client.post("/scan/resolve", json={"text": payload})
    assert resolved.json()["found"] is True
    assert resolved.json()["product"]["id"] == product["id"]

    by_code = await client.post("/scan/resolve", json={"text": product["qrCode"]})
    assert by_code.json()["product"]["id"] == product["id"]

    unknown = await client.post("/scan/resolve", json={"text": "PRD-unknown"})
    assert unknown.json() == {"found": False, "product": None}

    image = await client.get(f"/products/{product['id']}/qr", params={"size": 100})
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert image.content.startswith(b"\x89PNG")
    assert (await client.get("/products/missing/qr")).status_code == 404


async def test_export_import_and_clear(client: AsyncClient) -> None:
    product = await _create_product(client)
    await client.post("/inventory/stock-in", json={"productId": product["id"], "quantity": 4})

    exported = await client.get("/data/export")
    assert exported.status_code == 200
    assert "stock-backup-" in exported.headers["content-disposition"]
    snapshot = exported.json()
    assert snapshot["version"] == "1.0"

    assert (await client.post("/data/clear")).status_code == 400
    assert (await client.post("/data/clear", params={"confirm": "true"})).status_code == 204
    assert (await client.get("/products")).json() == []

    rejected = await client.post("/data/import", params={"confirm": "true"}, content=b"oops")
    assert rejected.status_code == 400
    unconfirmed = await client.post("/data/import", content=json.dumps(snapshot))
    assert unconfirmed.status_code == 400

    imported = await client.post(
        "/data/import", params={"confirm": "true"}, content=json.dumps(snapshot)
    )
    assert imported.status_code == 204
    restored = (await client.get(f"/products/{product['id']}")).json()
    assert restored["stock"] == 4
    assert len((await client.get("/inventory/transactions")).json()) == 1


async def test_imported_records_without_full_shape_are_listed(client: AsyncClient) -> None:
    snapshot = {
        "version": "1.0",
        "products": [{"id": "P1", "name": "Legacy", "stock": 3}],
        "transactions": [{"id": "T1", "productId": "P1", "quantity": "2"}, {"id": "T2"}],
    }
    imported = await client.post(
        "/data/import", params={"confirm": "true"}, content=json.dumps(snapshot)
    )
    assert imported.status_code == 204

    products = await client.get("/products")
    assert products.status_code == 200
    assert products.json()[0]["qrCode"] is None
    assert products.json()[0]["lowStock"] is True

    resolved = await client.post("/scan/resolve", json={"text": json.dumps({"id": "P1"})})
    assert resolved.status_code == 200
    assert resolved.json()["product"]["name"] == "Legacy"

    transactions = await client.get("/inventory/transactions")
    assert transactions.status_code == 200
    assert [t["productName"] for t in transactions.json()] == ["Legacy", "Deleted product"]
    assert transactions.json()[0]["quantity"] == 2
    assert transactions.json()[0]["timestamp"] is None

    assert (await client.get("/inventory/low-stock")).status_code == 200
    assert (await client.get("/inventory/stats")).json()["totalProducts"] == 1
