"""Pydantic schemas used by the API."""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CategoryCreate(CamelModel):
    name: str = Field(..., description="Display name, must not be blank.")
    description: Optional[str] = None


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CategoryOut(CamelModel):
    id: str
    name: str
    description: str = ""
    created_at: Optional[str] = None
    product_count: int = 0


class ProductCreate(CamelModel):
    name: str
    category_id: str
    barcode: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0, description="Low stock threshold.")


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    category_id: Optional[str] = None
    barcode: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _number_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int_or_none(value: Any) -> Optional[int]:
    number = _number_or_none(value)
    if number is None:
        return None
    try:
        return int(number)
    except (OverflowError, ValueError):
        return None


class ProductOut(CamelModel):
    """Stored product as returned by the API.

    Imported snapshots are stored without shape checks, so every field is
    optional and unreadable values come back as ``None``.
    """

    id: Optional[str] = None
    qr_code: Optional[str] = None
    category_id: Optional[str] = None
    name: Optional[str] = None
    barcode: Optional[str] = None
    price: Optional[float] = None
    cost: Optional[float] = None
    min_stock: Optional[int] = None
    stock: Optional[int] = None
    total_in: Optional[int] = None
    total_out: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    low_stock: bool = False

    _texts = field_validator(
        "id", "qr_code", "category_id", "name", "barcode", "created_at", "updated_at",
        mode="before",
    )(_text_or_none)
    _prices = field_validator("price", "cost", mode="before")(_number_or_none)
    _counters = field_validator(
        "min_stock", "stock", "total_in", "total_out", mode="before"
    )(_int_or_none)


class StockMovementIn(CamelModel):
    product_id: str
    quantity: int = Field(..., gt=0, description="Number of units moved.")
    notes: Optional[str] = None


class TransactionOut(CamelModel):
    id: Optional[str] = None
    product_id: Optional[str] = None
    type: Optional[str] = None
    quantity: Optional[int] = None
    notes: Optional[str] = None
    timestamp: Optional[str] = None
    product_name: Optional[str] = None
    product_deleted: bool = False

    _texts = field_validator(
        "id", "product_id", "type", "notes", "timestamp", "product_name", mode="before"
    )(_text_or_none)
    _quantity = field_validator("quantity", mode="before")(_int_or_none)


class StockMovementOut(CamelModel):
    product: ProductOut
    transaction: TransactionOut


class ScanRequest(CamelModel):
    text: str = Field(..., description="Decoded QR text or a literal QR code.")


class ScanResult(CamelModel):
    found: bool
    product: Optional[ProductOut] = None


class QRPayloadOut(CamelModel):
    payload: str


class InventoryStatsOut(CamelModel):
    total_products: int
    total_categories: int
    total_stock_in: int
    total_stock_out: int
    total_records: int
    low_stock_count: int


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    environment: str


__all__ = [
    "CategoryCreate",
    "CategoryOut",
    "CategoryUpdate",
    "HealthStatus",
    "InventoryStatsOut",
    "ProductCreate",
    "ProductOut",
    "ProductUpdate",
    "QRPayloadOut",
    "ScanRequest",
    "ScanResult",
    "StockMovementIn",
    "StockMovementOut",
    "TransactionOut",
]
