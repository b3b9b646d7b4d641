from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

from order_logistics_sync.io.schema import (
    CSV_COLUMNS,
    CSV_ENCODING,
    HEADER_TO_KEY,
    TRACKING_UPDATE_KEYS,
)
from order_logistics_sync.models import Order

_log = logging.getLogger("order_logistics_sync.io.csv_io")


def _is_blank(val: Any) -> bool:
    """True if value is None/NaN/empty/'nan'/'none' (case-insensitive)."""
    if val is None:
        return True
    try:
        if pd.isna(val):
            return True
    except (TypeError, ValueError):
        pass
    s = str(val).strip()
    return s == "" or s.lower() in {"nan", "none"}


def _canonical_key(column: str) -> str:
    """Map an export header ('Tracking Number') or record key ('trackingNumber') to the key."""
    col = str(column).strip().strip('"')
    return HEADER_TO_KEY.get(col, col)


def orders_to_frame(orders: Iterable[Order]) -> pd.DataFrame:
    records = [o.to_dict() for o in orders]
    df = pd.DataFrame(records, columns=[k for k, _ in CSV_COLUMNS])
    return df.rename(columns=dict(CSV_COLUMNS))


def export_orders_csv(orders: Iterable[Order], path: Path | str) -> Path:
    """Write orders with human-readable headers; UTF-8 with BOM for Excel."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df = orders_to_frame(orders)
    df.to_csv(out, index=False, encoding=CSV_ENCODING)
    _log.info("Exported %d order(s) -> %s", len(df), out)
    return out


def read_csv_rows(path: Path | str) -> list[dict[str, str]]:
    """
    Read a CSV into records keyed by canonical record keys.
    Every cell is read as text (tracking numbers must not turn into floats);
    blank cells are dropped from each record.
    """
    df = pd.read_csv(
        path,
        dtype=str,
        keep_default_na=False,
        encoding=CSV_ENCODING,
        skip_blank_lines=True,
    )
    df = df.rename(columns=_canonical_key)
    rows: list[dict[str, str]] = []
    for rec in df.to_dict(orient="records"):
        rows.append({k: str(v).strip()
                    for k, v in rec.items() if not _is_blank(v)})
    return rows


def import_orders_csv(path: Path | str) -> list[Order]:
    """Rows -> Orders. Rows that cannot be parsed are skipped with a warning."""
    orders: list[Order] = []
    for i, row in enumerate(read_csv_rows(path), start=2):
        if not row:
            continue
        try:
            orders.append(Order.from_dict(row))
        except (TypeError, ValueError) as ex:
            _log.warning("Skipping CSV line %d: %s", i, ex)
    _log.info("Imported %d order(s) from %s", len(orders), path)
    return orders


def merge_imported(existing: Iterable[Order], imported: Iterable[Order]) -> list[Order]:
    """Imported orders replace same-id orders; new ones are prepended."""
    by_id = {o.id: o for o in imported}
    merged = [by_id.pop(o.id, o) for o in existing]
    return list(by_id.values()) + merged


def apply_tracking_updates(
    orders: Iterable[Order],
    rows: Iterable[dict[str, str]],
    *,
    stamp: Optional[str] = None,
) -> tuple[list[Order], int]:
    """
    Batch logistics update: each row names an order by `id` (or
    `platformOrderId`) and carries new tracking numbers. Only the tracking
    fields are touched; `lastUpdated` is set to `stamp` when provided.
    Returns (orders, number of orders changed).
    """
    updates: dict[str, dict[str, str]] = {}
    for row in rows:
        ref = row.get("id") or row.get("platformOrderId")
        fields = {k: row[k] for k in TRACKING_UPDATE_KEYS if row.get(k)}
        if ref and fields:
            updates.setdefault(ref, {}).update(fields)

    out: list[Order] = []
    changed = 0
    for order in orders:
        fields = updates.get(order.id) or (
            updates.get(order.platform_order_id) if order.platform_order_id else None)
        patch = {}
        if fields:
            if fields.get("trackingNumber") and fields["trackingNumber"] != order.tracking_number:
                patch["tracking_number"] = fields["trackingNumber"]
            if fields.get("supplierTrackingNumber") and fields["supplierTrackingNumber"] != order.supplier_tracking_number:
                patch["supplier_tracking_number"] = fields["supplierTrackingNumber"]
        if patch:
            if stamp:
                patch["last_updated"] = stamp
            order = dataclasses.replace(order, **patch)
            changed += 1
        out.append(order)
    return out, changed
