# src/order_logistics_sync/rules/status_mapper.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from order_logistics_sync.models import Order, OrderStatus

# 17TRACK latest_status codes
NOT_FOUND = "0"
IN_TRANSIT = "10"
EXPIRED = "20"
PICKED_UP = "30"
UNDELIVERED = "35"
DELIVERED = "40"
ALERT = "50"

CODE_DETAILS: dict[str, str] = {
    IN_TRANSIT: "In transit",
    EXPIRED: "Exception: in transit too long",
    PICKED_UP: "Picked up",
    UNDELIVERED: "Delivery failed / awaiting pickup",
    DELIVERED: "Delivered",
    ALERT: "Exception: transit problem",
    NOT_FOUND: "Unknown: not found",
}
UNKNOWN_DETAIL = "Unknown status"

SUPPLIER_SHIPPED_DETAIL = "Supplier shipped"
SUPPLIER_DELIVERED_DETAIL = "Supplier delivered to warehouse"


class Leg(str, Enum):
    SUPPLIER = "supplier"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class StatusOutcome:
    """What one signal says about an order: a detail string and, optionally,
    the lifecycle status it pushes the order toward."""
    detail: str
    target: Optional[OrderStatus] = None

    def advances(self, current: OrderStatus) -> bool:
        return self.target is not None and self.target.rank > current.rank


def describe_code(code: str) -> str:
    return CODE_DETAILS.get(str(code).strip(), UNKNOWN_DETAIL)


def map_code(code: str, leg: Leg) -> StatusOutcome:
    """
    Map a provider code for one leg.

    Advancing codes carry the same detail whether or not the order still has
    to move, so re-running a pass on unchanged data changes nothing.
    """
    c = str(code).strip()
    if leg is Leg.SUPPLIER:
        if c in (IN_TRANSIT, PICKED_UP):
            return StatusOutcome(SUPPLIER_SHIPPED_DETAIL, OrderStatus.PURCHASED)
        if c == DELIVERED:
            # arrived at the forwarding point
            return StatusOutcome(SUPPLIER_DELIVERED_DETAIL, OrderStatus.READY_TO_SHIP)
        return StatusOutcome(describe_code(c))

    if c in (IN_TRANSIT, PICKED_UP):
        return StatusOutcome(describe_code(c), OrderStatus.SHIPPED)
    if c == DELIVERED:
        return StatusOutcome(describe_code(c), OrderStatus.DELIVERED)
    return StatusOutcome(describe_code(c))


def resolve_order_outcome(
    order: Order,
    status_by_number: dict[str, str],
) -> Optional[StatusOutcome]:
    """
    Combine both legs of one order into a single outcome.

    Precedence:
        an advance on the customer leg, then an advance on the supplier leg;
        the advancing leg supplies both status and detail
        with no advance, the detail comes from the leg whose target is the
        current status, else the customer leg, else the supplier leg
    The supplier leg is only consulted while the order is before Shipped.
    Returns None when the provider said nothing about this order.
    """
    customer: Optional[StatusOutcome] = None
    supplier: Optional[StatusOutcome] = None

    if order.tracking_number and order.tracking_number in status_by_number:
        customer = map_code(status_by_number[order.tracking_number], Leg.CUSTOMER)

    if (
        order.supplier_tracking_number
        and order.supplier_tracking_number in status_by_number
        and order.status.rank < OrderStatus.SHIPPED.rank
    ):
        supplier = map_code(
            status_by_number[order.supplier_tracking_number], Leg.SUPPLIER)

    legs = [c for c in (customer, supplier) if c is not None]
    if not legs:
        return None

    for outcome in legs:
        if outcome.advances(order.status):
            return outcome

    settled = next((c for c in legs if c.target is order.status), None)
    return StatusOutcome((settled or legs[0]).detail)
