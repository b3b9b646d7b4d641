from __future__ import annotations

import datetime as dt
from typing import Iterable, Literal, Optional

from order_logistics_sync.models import Order, OrderStatus, WarningRules
from order_logistics_sync.utils.clock import parse_iso, utc_now

DelayType = Literal["purchase", "shipping"]


def _deadline(order: Order, rules: WarningRules) -> Optional[tuple[DelayType, dt.datetime]]:
    """
    Which timeout applies to this order and when it expires:
      - Purchased: purchase_timeout_hours after the purchase date
      - Shipped:   shipping_timeout_days after the last update (purchase date if unset)
    """
    if order.deleted:
        return None

    if order.status is OrderStatus.PURCHASED:
        start = parse_iso(order.purchase_date)
        if start is None:
            return None
        return "purchase", start + dt.timedelta(hours=rules.purchase_timeout_hours)

    if order.status is OrderStatus.SHIPPED:
        start = parse_iso(order.last_updated) or parse_iso(order.purchase_date)
        if start is None:
            return None
        return "shipping", start + dt.timedelta(days=rules.shipping_timeout_days)

    return None


def classify_delay(
    order: Order,
    rules: WarningRules = WarningRules(),
    now: Optional[dt.datetime] = None,
) -> Optional[DelayType]:
    """'purchase' / 'shipping' when the order is past its timeout, else None."""
    found = _deadline(order, rules)
    if found is None:
        return None
    kind, deadline = found
    return kind if (now or utc_now()) > deadline else None


def is_impending(
    order: Order,
    rules: WarningRules = WarningRules(),
    now: Optional[dt.datetime] = None,
) -> bool:
    """True inside the buffer window just before a timeout (the yellow warning)."""
    found = _deadline(order, rules)
    if found is None:
        return False
    _, deadline = found
    current = now or utc_now()
    window_start = deadline - dt.timedelta(hours=rules.impending_buffer_hours)
    return window_start <= current <= deadline


def delayed_orders(
    orders: Iterable[Order],
    rules: WarningRules = WarningRules(),
    now: Optional[dt.datetime] = None,
) -> list[tuple[Order, DelayType]]:
    current = now or utc_now()
    out: list[tuple[Order, DelayType]] = []
    for order in orders:
        kind = classify_delay(order, rules, current)
        if kind is not None:
            out.append((order, kind))
    return out
