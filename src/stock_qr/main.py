"""ASGI entrypoint for running the service."""
from __future__ import annotations

import uvicorn

from .config import get_settings


def run() -> None:
    """Convenience wrapper used by the ``stock-qr`` console script."""

    settings = get_settings()
    uvicorn.run(
        "stock_qr.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
