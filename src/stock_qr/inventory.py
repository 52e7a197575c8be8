"""Inventory commands: validation and guards on top of the store and ledger."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .config import Settings, get_settings
from .exceptions import (
    CategoryInUseError,
    CategoryNotFoundError,
    PersistenceError,
    ProductNotFoundError,
    ValidationError,
)
from .ledger import DIRECTION_IN, DIRECTION_OUT, DIRECTIONS, Movement, StockLedger
from .scan import ScanResolver, build_payload
from .snapshot import clear_all, export_snapshot, import_snapshot
from .storage import StoragePort, create_storage
from .store import Collection, DocumentStore, Record

logger = logging.getLogger(__name__)

DELETED_PRODUCT_NAME = "Deleted product"


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _normalize_price(value: Any) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return parsed if parsed >= 0 else 0.0


def _normalize_min_stock(value: Any, default: int) -> int:
    """Convert threshold inputs to positive integers, falling back to ``default``."""

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def is_low_stock(product: Mapping[str, Any], default_min_stock: int = 10) -> bool:
    threshold = product.get("minStock") or default_min_stock
    try:
        return int(product.get("stock") or 0) <= int(threshold)
    except (TypeError, ValueError):
        return False


@dataclass
class CategorySummary:
    id: str
    name: str
    description: str = ""
    created_at: Optional[str] = None
    product_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
            "productCount": self.product_count,
        }


@dataclass
class TransactionView:
    """A transaction joined with the name of its product."""

    transaction: Record
    product_name: str
    product_deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        record = dict(self.transaction)
        record["productName"] = self.product_name
        record["productDeleted"] = self.product_deleted
        return record


@dataclass
class InventoryStats:
    total_products: int = 0
    total_categories: int = 0
    total_stock_in: int = 0
    total_stock_out: int = 0
    total_records: int = 0
    low_stock_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "totalCategories": self.total_categories,
            "totalStockIn": self.total_stock_in,
            "totalStockOut": self.total_stock_out,
            "totalRecords": self.total_records,
            "lowStockCount": self.low_stock_count,
        }


class InventoryManager:
    """Entry point for every inventory operation."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        transaction_limit: int = 1000,
    ) -> None:
        self.store = store
        self.ledger = StockLedger(store, transaction_limit=transaction_limit)
        self.resolver = ScanResolver(store)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        storage: StoragePort | None = None,
    ) -> "InventoryManager":
        settings = settings or get_settings()
        store = DocumentStore(
            storage if storage is not None else create_storage(settings),
            qr_prefix=settings.qr_prefix,
            default_min_stock=settings.default_min_stock,
        )
        return cls(store, transaction_limit=settings.transaction_limit)

    @property
    def default_min_stock(self) -> int:
        return self.store.default_min_stock

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def list_categories(self) -> List[CategorySummary]:
        products = self.store.list(Collection.PRODUCTS)
        summaries = []
        for category in self.store.list(Collection.CATEGORIES):
            count = sum(1 for product in products if product.get("categoryId") == category.get("id"))
            summaries.append(
                CategorySummary(
                    id=category.get("id", ""),
                    name=category.get("name", ""),
                    description=category.get("description") or "",
                    created_at=category.get("createdAt"),
                    product_count=count,
                )
            )
        return summaries

    def get_category(self, category_id: str) -> Record:
        category = self.store.find_by_id(Collection.CATEGORIES, category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def save_category(self, data: Mapping[str, Any]) -> Record:
        category_id = data.get("id") or None
        patch: Dict[str, Any] = {}
        if category_id is None or "name" in data:
            name = _clean_text(data.get("name"))
            if not name:
                raise ValidationError("Category name is required")
            patch["name"] = name
        if category_id is None or "description" in data:
            patch["description"] = _clean_text(data.get("description"))
        if category_id is not None:
            self.get_category(category_id)
            patch["id"] = category_id
        saved = self.store.upsert(Collection.CATEGORIES, patch)
        if saved is None:
            raise PersistenceError("Could not save category")
        return saved

    def delete_category(self, category_id: str) -> None:
        self.get_category(category_id)
        in_use = [
            product
            for product in self.store.list(Collection.PRODUCTS)
            if product.get("categoryId") == category_id
        ]
        if in_use:
            raise CategoryInUseError(category_id, len(in_use))
        if not self.store.remove(Collection.CATEGORIES, category_id):
            raise PersistenceError("Could not delete category")
        logger.info("Deleted category %s", category_id)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------
    def list_products(self) -> List[Record]:
        return self.store.list(Collection.PRODUCTS)

    def get_product(self, product_id: str) -> Record:
        product = self.store.find_by_id(Collection.PRODUCTS, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def find_product_by_qr(self, qr_code: str) -> Optional[Record]:
        return self.store.find_by(Collection.PRODUCTS, "qrCode", qr_code)

    def save_product(self, data: Mapping[str, Any]) -> Record:
        product_id = data.get("id") or None
        creating = product_id is None
        if not creating:
            self.get_product(product_id)

        patch: Dict[str, Any] = {}
        if creating or "name" in data:
            name = _clean_text(data.get("name"))
            if not name:
                raise ValidationError("Product name is required")
            patch["name"] = name
        if creating or "categoryId" in data:
            category_id = _clean_text(data.get("categoryId"))
            if not category_id:
                raise ValidationError("Product category is required")
            if self.store.find_by_id(Collection.CATEGORIES, category_id) is None:
                raise ValidationError(f"Category '{category_id}' does not exist")
            patch["categoryId"] = category_id
        if creating or "barcode" in data:
            patch["barcode"] = _clean_text(data.get("barcode"))
        for price_field in ("price", "cost"):
            if creating or price_field in data:
                patch[price_field] = _normalize_price(data.get(price_field))
        if creating or "minStock" in data:
            patch["minStock"] = _normalize_min_stock(data.get("minStock"), self.default_min_stock)
        if not creating:
            patch["id"] = product_id

        saved = self.store.upsert(Collection.PRODUCTS, patch)
        if saved is None:
            raise PersistenceError("Could not save product")
        return saved

    def delete_product(self, product_id: str) -> None:
        self.get_product(product_id)
        if not self.store.remove(Collection.PRODUCTS, product_id):
            raise PersistenceError("Could not delete product")
        logger.info("Deleted product %s", product_id)

    def search_products(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> List[Record]:
        products = self.store.list(Collection.PRODUCTS)
        needle = _clean_text(search).lower()
        if needle:
            products = [
                product
                for product in products
                if needle in str(product.get("name") or "").lower()
                or needle in str(product.get("barcode") or "").lower()
            ]
        if category_id:
            products = [product for product in products if product.get("categoryId") == category_id]
        return products

    def low_stock_products(self) -> List[Record]:
        return [
            product
            for product in self.store.list(Collection.PRODUCTS)
            if is_low_stock(product, self.default_min_stock)
        ]

    def is_low_stock(self, product: Mapping[str, Any]) -> bool:
        return is_low_stock(product, self.default_min_stock)

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------
    def move_stock(
        self,
        product_id: str,
        quantity: Any,
        direction: str,
        notes: Optional[str] = None,
    ) -> Movement:
        return self.ledger.move_stock(product_id, quantity, direction, notes=_clean_text(notes))

    def stock_in(self, product_id: str, quantity: Any, notes: Optional[str] = None) -> Movement:
        return self.move_stock(product_id, quantity, DIRECTION_IN, notes)

    def stock_out(self, product_id: str, quantity: Any, notes: Optional[str] = None) -> Movement:
        return self.move_stock(product_id, quantity, DIRECTION_OUT, notes)

    def list_transactions(
        self,
        transaction_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[TransactionView]:
        if transaction_type is not None and transaction_type not in DIRECTIONS:
            raise ValidationError(f"Unknown transaction type {transaction_type!r}")
        names = {
            product.get("id"): product.get("name", "")
            for product in self.store.list(Collection.PRODUCTS)
        }
        views: List[TransactionView] = []
        for transaction in self.store.list(Collection.TRANSACTIONS):
            if transaction_type and transaction.get("type") != transaction_type:
                continue
            product_id = transaction.get("productId")
            if product_id in names:
                views.append(TransactionView(transaction, names[product_id]))
            else:
                views.append(TransactionView(transaction, DELETED_PRODUCT_NAME, product_deleted=True))
        if limit is not None and limit >= 0:
            return views[:limit]
        return views

    def stats(self) -> InventoryStats:
        products = self.store.list(Collection.PRODUCTS)
        categories = self.store.list(Collection.CATEGORIES)
        transactions = self.store.list(Collection.TRANSACTIONS)
        total_in = 0
        total_out = 0
        for product in products:
            total_in += _as_int(product.get("totalIn"))
            total_out += _as_int(product.get("totalOut"))
        return InventoryStats(
            total_products=len(products),
            total_categories=len(categories),
            total_stock_in=total_in,
            total_stock_out=total_out,
            total_records=len(products) + len(categories) + len(transactions),
            low_stock_count=sum(1 for product in products if self.is_low_stock(product)),
        )

    # ------------------------------------------------------------------
    # QR codes
    # ------------------------------------------------------------------
    def resolve_scan(self, decoded_text: str) -> Optional[Record]:
        return self.resolver.resolve(decoded_text)

    def qr_payload(self, product_id: str) -> str:
        return build_payload(self.get_product(product_id))

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------
    def export_snapshot(self) -> Dict[str, Any]:
        return export_snapshot(self.store)

    def import_snapshot(self, document: Mapping[str, Any]) -> None:
        if not import_snapshot(self.store, document):
            raise PersistenceError("Could not import every collection")

    def clear_all(self) -> None:
        if not clear_all(self.store):
            raise PersistenceError("Could not clear stored data")


__all__ = [
    "CategorySummary",
    "DELETED_PRODUCT_NAME",
    "InventoryManager",
    "InventoryStats",
    "TransactionView",
    "is_low_stock",
]
