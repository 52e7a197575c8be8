"""Utility helpers for administrative tasks."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from sqlalchemy import Engine

from .config import Settings, configure_logging, get_settings
from .database import create_engine
from .database import init_database as create_tables
from .inventory import InventoryManager
from .snapshot import backup_filename, parse_snapshot

logger = logging.getLogger(__name__)


def init_database(db_engine: Engine | None = None, settings: Settings | None = None) -> None:
    """Create database tables for the SQL storage backend."""

    engine_to_use = db_engine or create_engine(settings)
    create_tables(engine_to_use)


def dump_snapshot(manager: InventoryManager, destination: str | Path) -> Path:
    """Write a backup file; ``destination`` may be a directory."""

    path = Path(destination)
    if path.is_dir():
        path = path / backup_filename()
    path.parent.mkdir(parents=True, exist_ok=True)
    snapshot = manager.export_snapshot()
    path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported snapshot to %s", path)
    return path


def load_snapshot(manager: InventoryManager, source: str | Path) -> None:
    """Replace stored data with the collections found in a backup file."""

    document = parse_snapshot(Path(source).read_bytes())
    manager.import_snapshot(document)
    logger.info("Imported snapshot from %s", source)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="stock-qr-admin")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init-db", help="create the SQL storage table")
    export_parser = commands.add_parser("export", help="write a backup file")
    export_parser.add_argument("destination", nargs="?", default=".")
    import_parser = commands.add_parser("import", help="restore a backup file")
    import_parser.add_argument("source")
    import_parser.add_argument("--yes", action="store_true", help="confirm replacing stored data")
    commands.add_parser("clear", help="delete all stored data").add_argument(
        "--yes", action="store_true", help="confirm deleting stored data"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)
    if args.command == "init-db":
        init_database(settings=settings)
        return 0

    manager = InventoryManager.from_settings(settings)
    if args.command == "export":
        print(dump_snapshot(manager, args.destination))
        return 0
    if not args.yes:
        parser.error(f"'{args.command}' replaces stored data; pass --yes to confirm")
    if args.command == "import":
        load_snapshot(manager, args.source)
    else:
        manager.clear_all()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
