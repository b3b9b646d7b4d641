# src/order_logistics_sync/pipelines/metrics.py
from __future__ import annotations

from typing import Iterable

import pandas as pd

from order_logistics_sync.models import Order, OrderStats, OrderStatus

_ACTIVE = [s.value for s in (
    OrderStatus.PENDING,
    OrderStatus.PURCHASED,
    OrderStatus.READY_TO_SHIP,
    OrderStatus.SHIPPED,
)]


def orders_frame(orders: Iterable[Order]) -> pd.DataFrame:
    """One row per order with the columns the dashboard needs."""
    rows = [
        {
            "id": o.id,
            "status": o.status.value,
            "quantity": o.quantity,
            "priceUSD": o.price_usd,
            "deleted": o.deleted,
        }
        for o in orders
    ]
    return pd.DataFrame(rows, columns=["id", "status", "quantity", "priceUSD", "deleted"])


def summarize_orders(orders: Iterable[Order]) -> OrderStats:
    """Dashboard counters. Soft-deleted orders are left out."""
    df = orders_frame(orders)
    df = df.loc[~df["deleted"].astype(bool)]
    if df.empty:
        return OrderStats(by_status={s.value: 0 for s in OrderStatus})

    qty = pd.to_numeric(df["quantity"], errors="coerce").fillna(0)
    price = pd.to_numeric(df["priceUSD"], errors="coerce").fillna(0.0)
    counts = df["status"].value_counts()

    return OrderStats(
        total_orders=int(len(df)),
        total_spent=round(float((qty * price).sum()), 2),
        active_orders=int(df["status"].isin(_ACTIVE).sum()),
        pending_orders=int(counts.get(OrderStatus.PENDING.value, 0)),
        delivered_orders=int(counts.get(OrderStatus.DELIVERED.value, 0)),
        by_status={s.value: int(counts.get(s.value, 0)) for s in OrderStatus},
    )
