from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

from order_logistics_sync.io.schema import BACKUP_VERSION
from order_logistics_sync.models import Customer, Order
from order_logistics_sync.utils.clock import to_iso, utc_now


class StoreError(RuntimeError):
    """Persisted data could not be read or written."""


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8-sig"))
    except ValueError as ex:
        raise StoreError(f"Invalid JSON in {path}: {ex}") from ex
    except OSError as ex:
        raise StoreError(f"Could not read {path}: {ex}") from ex


def _write_json(path: Path, data: Any) -> None:
    """Write via a temp file + replace so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except OSError as ex:
        Path(tmp).unlink(missing_ok=True)
        raise StoreError(f"Could not write {path}: {ex}") from ex


def _orders_from(records: Any, source: Path) -> list[Order]:
    if not isinstance(records, list):
        raise StoreError(f"Expected a JSON array of orders in {source}")
    try:
        return [Order.from_dict(r) for r in records if isinstance(r, dict)]
    except (TypeError, ValueError) as ex:
        raise StoreError(f"Malformed order record in {source}: {ex}") from ex


class OrderStore:
    """JSON-file order store: a plain array of camelCase order records.

    A missing file loads as an empty collection.
    """

    def __init__(self, path: Path | str, logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self.logger = logger or logging.getLogger(
            "order_logistics_sync.io.store")

    def load(self) -> list[Order]:
        if not self.path.exists():
            self.logger.info("No order file at %s; starting empty", self.path)
            return []
        raw = _read_json(self.path)
        # accept a full backup as well as a bare array
        if isinstance(raw, dict) and "orders" in raw:
            raw = raw["orders"]
        orders = _orders_from(raw, self.path)
        self.logger.debug("Loaded %d order(s) from %s", len(orders), self.path)
        return orders

    def save(self, orders: Iterable[Order]) -> None:
        records = [o.to_dict() for o in orders]
        _write_json(self.path, records)
        self.logger.debug("Saved %d order(s) to %s", len(records), self.path)


def export_backup(path: Path | str, orders: Iterable[Order], customers: Iterable[Customer] = ()) -> None:
    """Full system backup: orders + customers in one JSON document."""
    _write_json(
        Path(path),
        {
            "version": BACKUP_VERSION,
            "exportedAt": to_iso(utc_now()),
            "orders": [o.to_dict() for o in orders],
            "customers": [c.to_dict() for c in customers],
        },
    )


def load_backup(path: Path | str) -> tuple[list[Order], list[Customer]]:
    p = Path(path)
    raw = _read_json(p)
    if isinstance(raw, list):
        return _orders_from(raw, p), []
    if not isinstance(raw, dict):
        raise StoreError(f"Unrecognised backup format in {p}")
    orders = _orders_from(raw.get("orders", []), p)
    customers = [Customer.from_dict(c)
                 for c in raw.get("customers", []) if isinstance(c, dict)]
    return orders, customers
