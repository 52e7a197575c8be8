"""Stock counters and the capped transaction log."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .exceptions import (
    InsufficientStockError,
    InvalidDirectionError,
    InvalidQuantityError,
    PersistenceError,
    ProductNotFoundError,
)
from .store import Collection, DocumentStore, Record, generate_id, serialize_timestamp

logger = logging.getLogger(__name__)

DIRECTION_IN = "in"
DIRECTION_OUT = "out"
DIRECTIONS = (DIRECTION_IN, DIRECTION_OUT)
DEFAULT_TRANSACTION_LIMIT = 1000


@dataclass(frozen=True)
class Movement:
    """Result of a committed stock movement."""

    product: Record
    transaction: Record


def _counter(record: Record, field: str) -> int:
    try:
        return int(record.get(field) or 0)
    except (TypeError, ValueError):
        return 0


def _apply(product: Record, quantity: int, direction: str) -> Record:
    updated = dict(product)
    if direction == DIRECTION_IN:
        updated["stock"] = _counter(product, "stock") + quantity
        updated["totalIn"] = _counter(product, "totalIn") + quantity
    elif direction == DIRECTION_OUT:
        updated["stock"] = _counter(product, "stock") - quantity
        updated["totalOut"] = _counter(product, "totalOut") + quantity
    updated["updatedAt"] = serialize_timestamp()
    return updated


def validate_quantity(quantity: Any) -> int:
    """Return ``quantity`` as a positive ``int`` or raise."""

    if isinstance(quantity, bool):
        raise InvalidQuantityError("Quantity must be a positive integer")
    if isinstance(quantity, str):
        quantity = quantity.strip()
        if not quantity.isdecimal():
            raise InvalidQuantityError("Quantity must be a positive integer")
        try:
            quantity = int(quantity)
        except ValueError:
            raise InvalidQuantityError("Quantity must be a positive integer") from None
    if isinstance(quantity, float) and quantity.is_integer():
        quantity = int(quantity)
    if not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError("Quantity must be a positive integer")
    return quantity


class StockLedger:
    def __init__(
        self,
        store: DocumentStore,
        *,
        transaction_limit: int = DEFAULT_TRANSACTION_LIMIT,
    ) -> None:
        self.store = store
        self.transaction_limit = transaction_limit

    def apply_movement(self, product_id: str, quantity: int, direction: str) -> Optional[Record]:
        """Update the counters of ``product_id`` without any guard.

        Callers validate the quantity and check available stock first.
        Returns ``None`` when the product does not exist or nothing was written.
        """

        with self.store.lock:
            products = self.store.list(Collection.PRODUCTS)
            for index, product in enumerate(products):
                if product.get("id") == product_id:
                    break
            else:
                return None
            products[index] = _apply(product, quantity, direction)
            if not self.store.save(Collection.PRODUCTS, products):
                return None
            return products[index]

    def record_transaction(
        self,
        product_id: str,
        transaction_type: str,
        quantity: int,
        notes: Optional[str] = None,
    ) -> Optional[Record]:
        """Prepend a transaction to the log, evicting the oldest past the limit."""

        with self.store.lock:
            transactions = self.store.list(Collection.TRANSACTIONS)
            transaction = self._new_transaction(product_id, transaction_type, quantity, notes)
            transactions.insert(0, transaction)
            del transactions[self.transaction_limit:]
            if not self.store.save(Collection.TRANSACTIONS, transactions):
                return None
            return transaction

    def move_stock(
        self,
        product_id: str,
        quantity: Any,
        direction: str,
        notes: Optional[str] = None,
    ) -> Movement:
        """Apply a movement and log it as a single unit.

        Nothing is changed when a guard fails.  If the transaction log cannot
        be written after the product was, the products document is restored
        and :class:`PersistenceError` is raised.
        """

        if direction not in DIRECTIONS:
            raise InvalidDirectionError(f"Unknown movement direction {direction!r}")
        quantity = validate_quantity(quantity)
        with self.store.lock:
            products_raw = self.store.load_raw(Collection.PRODUCTS)
            products = self.store.list(Collection.PRODUCTS)
            index = next(
                (i for i, product in enumerate(products) if product.get("id") == product_id),
                None,
            )
            if index is None:
                raise ProductNotFoundError(product_id)
            current = products[index]
            available = _counter(current, "stock")
            if direction == DIRECTION_OUT and quantity > available:
                raise InsufficientStockError(product_id, quantity, available)

            updated = _apply(current, quantity, direction)
            products[index] = updated
            if not self.store.save(Collection.PRODUCTS, products):
                raise PersistenceError("Could not save product stock")

            transactions = self.store.list(Collection.TRANSACTIONS)
            transaction = self._new_transaction(product_id, direction, quantity, notes)
            transactions.insert(0, transaction)
            del transactions[self.transaction_limit:]
            if not self.store.save(Collection.TRANSACTIONS, transactions):
                if not self.store.restore_raw(Collection.PRODUCTS, products_raw):
                    logger.critical(
                        "Stock of product %s changed but its transaction was not recorded",
                        product_id,
                    )
                raise PersistenceError("Could not record the stock transaction")

        logger.info(
            "Stock %s: product=%s quantity=%s stock=%s",
            direction,
            product_id,
            quantity,
            updated["stock"],
        )
        return Movement(product=updated, transaction=transaction)

    @staticmethod
    def _new_transaction(
        product_id: str, transaction_type: str, quantity: int, notes: Optional[str]
    ) -> Record:
        return {
            "id": generate_id(),
            "productId": product_id,
            "type": transaction_type,
            "quantity": quantity,
            "notes": notes or "",
            "timestamp": serialize_timestamp(),
        }


__all__ = [
    "DEFAULT_TRANSACTION_LIMIT",
    "DIRECTIONS",
    "DIRECTION_IN",
    "DIRECTION_OUT",
    "Movement",
    "StockLedger",
    "validate_quantity",
]
