"""Errors raised by the inventory command layer."""
from __future__ import annotations


class InventoryError(Exception):
    """Base class for inventory errors."""


class ValidationError(InventoryError, ValueError):
    pass


class InvalidQuantityError(ValidationError):
    pass


class InvalidDirectionError(ValidationError):
    pass


class InsufficientStockError(InventoryError, ValueError):
    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Requested quantity {requested} exceeds available stock {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class CategoryInUseError(InventoryError, ValueError):
    def __init__(self, category_id: str, product_count: int) -> None:
        super().__init__(
            f"Category '{category_id}' is used by {product_count} product(s)"
        )
        self.category_id = category_id
        self.product_count = product_count


class SnapshotError(InventoryError, ValueError):
    pass


class ScanError(InventoryError, ValueError):
    pass


class ProductNotFoundError(InventoryError, KeyError):
    def __str__(self) -> str:
        return f"Product '{self.args[0]}' not found"


class CategoryNotFoundError(InventoryError, KeyError):
    def __str__(self) -> str:
        return f"Category '{self.args[0]}' not found"


class PersistenceError(InventoryError):
    """A change could not be written to storage."""


__all__ = [
    "CategoryInUseError",
    "CategoryNotFoundError",
    "InsufficientStockError",
    "InvalidDirectionError",
    "InvalidQuantityError",
    "InventoryError",
    "PersistenceError",
    "ProductNotFoundError",
    "ScanError",
    "SnapshotError",
    "ValidationError",
]
