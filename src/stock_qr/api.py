"""FastAPI router configuration."""
from __future__ import annotations

import logging
from typing import Any, Literal, Mapping, Optional, Sequence

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from . import schemas
from .config import Settings, configure_logging, get_settings
from .exceptions import (
    CategoryInUseError,
    CategoryNotFoundError,
    InsufficientStockError,
    PersistenceError,
    ProductNotFoundError,
    SnapshotError,
    ValidationError,
)
from .inventory import InventoryManager
from .ledger import Movement
from .qr import QROptions, QRRenderError, render_png
from .snapshot import backup_filename, parse_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()


def provide_settings() -> Settings:
    """Dependency returning the active :class:`Settings` instance."""

    return get_settings()


def provide_manager(request: Request) -> InventoryManager:
    return request.app.state.manager


def _product_out(manager: InventoryManager, product: Mapping[str, Any]) -> schemas.ProductOut:
    out = schemas.ProductOut.model_validate(dict(product))
    out.low_stock = manager.is_low_stock(product)
    return out


def _movement_out(manager: InventoryManager, movement: Movement) -> schemas.StockMovementOut:
    transaction = dict(movement.transaction)
    transaction["productName"] = movement.product.get("name")
    return schemas.StockMovementOut(
        product=_product_out(manager, movement.product),
        transaction=schemas.TransactionOut.model_validate(transaction),
    )


def _require_confirmation(confirm: bool) -> None:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This operation replaces stored data; repeat it with confirm=true.",
        )


@router.get("/health", response_model=schemas.HealthStatus, tags=["system"])
def health_check(settings: Settings = Depends(provide_settings)) -> schemas.HealthStatus:
    return schemas.HealthStatus(environment=settings.environment)


@router.get("/categories", response_model=list[schemas.CategoryOut])
def list_categories(
    manager: InventoryManager = Depends(provide_manager),
) -> Sequence[schemas.CategoryOut]:
    return [schemas.CategoryOut.model_validate(c.to_dict()) for c in manager.list_categories()]


@router.post("/categories", response_model=schemas.CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: schemas.CategoryCreate, manager: InventoryManager = Depends(provide_manager)
) -> schemas.CategoryOut:
    try:
        category = manager.save_category(payload.model_dump(by_alias=True))
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.CategoryOut.model_validate(category)


@router.put("/categories/{category_id}", response_model=schemas.CategoryOut)
def update_category(
    category_id: str,
    payload: schemas.CategoryUpdate,
    manager: InventoryManager = Depends(provide_manager),
) -> schemas.CategoryOut:
    data = payload.model_dump(by_alias=True, exclude_unset=True)
    data["id"] = category_id
    try:
        category = manager.save_category(data)
    except CategoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return schemas.CategoryOut.model_validate(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: str, manager: InventoryManager = Depends(provide_manager)
) -> None:
    try:
        manager.delete_category(category_id)
    except CategoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except CategoryInUseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/products", response_model=schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductCreate, manager: InventoryManager = Depends(provide_manager)
) -> schemas.ProductOut:
    try:
        product = manager.save_product(payload.model_dump(by_alias=True))
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _product_out(manager, product)


@router.get("/products", response_model=list[schemas.ProductOut])
def list_products(
    search: Optional[str] = None,
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    manager: InventoryManager = Depends(provide_manager),
) -> Sequence[schemas.ProductOut]:
    products = manager.search_products(search=search, category_id=category_id)
    return [_product_out(manager, product) for product in products]


@router.get("/products/{product_id}", response_model=schemas.ProductOut)
def get_product(
    product_id: str, manager: InventoryManager = Depends(provide_manager)
) -> schemas.ProductOut:
    try:
        product = manager.get_product(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _product_out(manager, product)


@router.put("/products/{product_id}", response_model=schemas.ProductOut)
def update_product(
    product_id: str,
    payload: schemas.ProductUpdate,
    manager: InventoryManager = Depends(provide_manager),
) -> schemas.ProductOut:
    data = payload.model_dump(by_alias=True, exclude_unset=True)
    data["id"] = product_id
    try:
        product = manager.save_product(data)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _product_out(manager, product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, manager: InventoryManager = Depends(provide_manager)) -> None:
    try:
        manager.delete_product(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/products/{product_id}/qr-payload", response_model=schemas.QRPayloadOut)
def get_product_qr_payload(
    product_id: str, manager: InventoryManager = Depends(provide_manager)
) -> schemas.QRPayloadOut:
    try:
        payload = manager.qr_payload(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return schemas.QRPayloadOut(payload=payload)


@router.get("/products/{product_id}/qr", response_class=Response)
def get_product_qr(
    product_id: str,
    size: int = Query(default=250, gt=0, le=2000),
    fill_color: str = Query(default="#000000", alias="fill"),
    back_color: str = Query(default="#ffffff", alias="back"),
    manager: InventoryManager = Depends(provide_manager),
) -> Response:
    try:
        payload = manager.qr_payload(product_id)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    options = QROptions(size=size, fill_color=fill_color, back_color=back_color)
    try:
        image = render_png(payload, options)
    except (QRRenderError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(content=image, media_type="image/png")


def _move(
    manager: InventoryManager, payload: schemas.StockMovementIn, direction: str
) -> schemas.StockMovementOut:
    try:
        movement = manager.move_stock(payload.product_id, payload.quantity, direction, payload.notes)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (InsufficientStockError, ValidationError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _movement_out(manager, movement)


@router.post(
    "/inventory/stock-in",
    response_model=schemas.StockMovementOut,
    status_code=status.HTTP_201_CREATED,
)
def stock_in(
    payload: schemas.StockMovementIn, manager: InventoryManager = Depends(provide_manager)
) -> schemas.StockMovementOut:
    return _move(manager, payload, "in")


@router.post(
    "/inventory/stock-out",
    response_model=schemas.StockMovementOut,
    status_code=status.HTTP_201_CREATED,
)
def stock_out(
    payload: schemas.StockMovementIn, manager: InventoryManager = Depends(provide_manager)
) -> schemas.StockMovementOut:
    return _move(manager, payload, "out")


@router.get("/inventory/transactions", response_model=list[schemas.TransactionOut])
def list_transactions(
    transaction_type: Optional[Literal["in", "out"]] = Query(default=None, alias="type"),
    limit: Optional[int] = Query(default=None, ge=0),
    manager: InventoryManager = Depends(provide_manager),
) -> Sequence[schemas.TransactionOut]:
    views = manager.list_transactions(transaction_type, limit=limit)
    return [schemas.TransactionOut.model_validate(view.to_dict()) for view in views]


@router.get("/inventory/low-stock", response_model=list[schemas.ProductOut])
def list_low_stock(
    manager: InventoryManager = Depends(provide_manager),
) -> Sequence[schemas.ProductOut]:
    return [_product_out(manager, product) for product in manager.low_stock_products()]


@router.get("/inventory/stats", response_model=schemas.InventoryStatsOut)
def inventory_stats(
    manager: InventoryManager = Depends(provide_manager),
) -> schemas.InventoryStatsOut:
    return schemas.InventoryStatsOut.model_validate(manager.stats().to_dict())


@router.post("/scan/resolve", response_model=schemas.ScanResult)
def resolve_scan(
    payload: schemas.ScanRequest, manager: InventoryManager = Depends(provide_manager)
) -> schemas.ScanResult:
    product = manager.resolve_scan(payload.text)
    if product is None:
        return schemas.ScanResult(found=False)
    return schemas.ScanResult(found=True, product=_product_out(manager, product))


@router.get("/data/export", tags=["data"])
def export_data(manager: InventoryManager = Depends(provide_manager)) -> JSONResponse:
    snapshot = manager.export_snapshot()
    return JSONResponse(
        content=snapshot,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@router.post("/data/import", status_code=status.HTTP_204_NO_CONTENT, tags=["data"])
async def import_data(
    request: Request,
    confirm: bool = False,
    manager: InventoryManager = Depends(provide_manager),
) -> None:
    _require_confirmation(confirm)
    try:
        document = parse_snapshot(await request.body())
    except SnapshotError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await run_in_threadpool(manager.import_snapshot, document)


@router.post("/data/clear", status_code=status.HTTP_204_NO_CONTENT, tags=["data"])
def clear_data(
    confirm: bool = False, manager: InventoryManager = Depends(provide_manager)
) -> None:
    _require_confirmation(confirm)
    manager.clear_all()


async def _persistence_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


def create_app(
    settings: Settings | None = None,
    manager: InventoryManager | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    app = FastAPI(title=settings.app_name)
    app.dependency_overrides[provide_settings] = lambda: settings
    app.state.manager = manager or InventoryManager.from_settings(settings)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)
    app.include_router(router)
    return app


app = create_app()


__all__ = ["app", "create_app", "provide_manager", "provide_settings", "router"]
