"""Map decoded QR text to products.

Resolution only consumes decoded text; capturing and decoding images is left
to a scanner collaborator that calls :meth:`ScanSession.on_decoded` and
:meth:`ScanSession.on_error`.
"""
from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Protocol

from .exceptions import ScanError
from .ledger import DIRECTION_IN, DIRECTIONS, Movement
from .store import Collection, DocumentStore, Record

if TYPE_CHECKING:
    from .inventory import InventoryManager

logger = logging.getLogger(__name__)

SCAN_NOTES = "QR scan"


def build_payload(product: Mapping[str, Any]) -> str:
    """Text encoded into a product's QR image."""

    return json.dumps(
        {
            "id": product.get("id"),
            "qrCode": product.get("qrCode"),
            "name": product.get("name"),
        },
        ensure_ascii=False,
    )


def parse_payload(decoded_text: str) -> Dict[str, Any]:
    """Return the structured payload, or the raw text as a literal ``qrCode``."""

    try:
        data = json.loads(decoded_text)
    except (TypeError, ValueError):
        return {"qrCode": decoded_text}
    if not isinstance(data, dict):
        return {"qrCode": decoded_text}
    return data


class ScanResolver:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def resolve(self, decoded_text: str) -> Optional[Record]:
        payload = parse_payload(decoded_text)
        product = None
        product_id = payload.get("id")
        if product_id:
            product = self.store.find_by_id(Collection.PRODUCTS, product_id)
        qr_code = payload.get("qrCode")
        if product is None and qr_code:
            product = self.store.find_by(Collection.PRODUCTS, "qrCode", qr_code)
        if product is None:
            logger.info("No product matches scanned code %r", decoded_text)
        return product


class Scanner(Protocol):
    """Capture collaborator (camera, handheld reader, ...)."""

    def start(
        self,
        on_decoded: Callable[[str], Any],
        on_error: Callable[[str], Any],
    ) -> None:
        ...

    def stop(self) -> None:
        ...


class ScanSession:
    """Tracks the product last scanned in a given movement mode."""

    def __init__(self, manager: "InventoryManager", mode: str = DIRECTION_IN) -> None:
        self.manager = manager
        self.mode = mode
        self.scanned_product_id: Optional[str] = None
        self._scanner: Optional[Scanner] = None

    @property
    def mode(self) -> str:
        return self._mode

    @mode.setter
    def mode(self, value: str) -> None:
        if value not in DIRECTIONS:
            raise ScanError(f"Unknown scan mode {value!r}")
        self._mode = value

    def start(self, scanner: Scanner) -> None:
        self.stop()
        self._scanner = scanner
        scanner.start(self.on_decoded, self.on_error)

    def stop(self) -> None:
        if self._scanner is not None:
            self._scanner.stop()
            self._scanner = None

    def on_decoded(self, decoded_text: str) -> Optional[Record]:
        """Resolve a decoded frame; a match stops the scanner, a miss keeps the last product."""

        product = self.manager.resolve_scan(decoded_text)
        if product is None:
            return None
        self.scanned_product_id = product.get("id")
        self.stop()
        return product

    def on_error(self, message: str) -> None:
        logger.debug("Scanner error ignored: %s", message)

    def confirm(self, quantity: Any = 1) -> Movement:
        if self.scanned_product_id is None:
            raise ScanError("No product has been scanned")
        movement = self.manager.move_stock(
            self.scanned_product_id, quantity, self.mode, notes=SCAN_NOTES
        )
        self.scanned_product_id = None
        return movement


__all__ = [
    "SCAN_NOTES",
    "ScanResolver",
    "ScanSession",
    "Scanner",
    "build_payload",
    "parse_payload",
]
