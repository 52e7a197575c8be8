"""QR image rendering backed by the ``qrcode`` package."""
from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import qrcode
from PIL import Image
from qrcode.exceptions import DataOverflowError

from .exceptions import InventoryError


class QRRenderError(InventoryError):
    pass


@dataclass(frozen=True)
class QROptions:
    size: int = 250
    border: int = 2
    fill_color: str = "#000000"
    back_color: str = "#ffffff"


def render(text: str, options: QROptions | None = None) -> Image.Image:
    """Render ``text`` as a square QR image ``options.size`` pixels wide."""

    options = options or QROptions()
    if options.size <= 0:
        raise QRRenderError("QR image size must be positive")
    code = qrcode.QRCode(box_size=10, border=options.border)
    code.add_data(text)
    try:
        code.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise QRRenderError("Text is too long for a QR code") from exc
    image = code.make_image(fill_color=options.fill_color, back_color=options.back_color)
    pil_image = image.get_image().convert("RGB")
    return pil_image.resize((options.size, options.size), Image.NEAREST)


def render_png(text: str, options: QROptions | None = None) -> bytes:
    buffer = BytesIO()
    render(text, options).save(buffer, format="PNG")
    return buffer.getvalue()


__all__ = ["QROptions", "QRRenderError", "render", "render_png"]
