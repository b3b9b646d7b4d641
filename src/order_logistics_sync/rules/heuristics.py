# src/order_logistics_sync/rules/heuristics.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from order_logistics_sync.models import Order, OrderStatus
from order_logistics_sync.rules.status_mapper import StatusOutcome

SUPPLIER_SHIPPED_LOCAL_DETAIL = "Supplier shipped (inferred locally)"
SHIPPED_LOCAL_DETAIL = "Shipped (inferred locally)"


@dataclass(frozen=True)
class SyncPolicy:
    """Switches for the local inference rules.

    infer_shipped_from_customer_tracking: a customer-leg tracking number on an
    order that is not yet Shipped is taken as proof that it shipped.
    """
    infer_shipped_from_customer_tracking: bool = False


def _supplier_shipped(order: Order, policy: SyncPolicy) -> Optional[StatusOutcome]:
    if order.supplier_tracking_number and order.status is OrderStatus.PENDING:
        return StatusOutcome(SUPPLIER_SHIPPED_LOCAL_DETAIL, OrderStatus.PURCHASED)
    return None


def _customer_shipped(order: Order, policy: SyncPolicy) -> Optional[StatusOutcome]:
    if not policy.infer_shipped_from_customer_tracking:
        return None
    if order.tracking_number and order.status.rank < OrderStatus.SHIPPED.rank:
        return StatusOutcome(SHIPPED_LOCAL_DETAIL, OrderStatus.SHIPPED)
    return None


# Evaluated in order; first match wins.
RULES: tuple[Callable[[Order, SyncPolicy], Optional[StatusOutcome]], ...] = (
    _supplier_shipped,
    _customer_shipped,
)


def infer_outcome(order: Order, policy: SyncPolicy = SyncPolicy()) -> Optional[StatusOutcome]:
    """Local inference from tracking-field presence only; no network."""
    for rule in RULES:
        outcome = rule(order, policy)
        if outcome is not None:
            return outcome
    return None
