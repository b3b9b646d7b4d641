# src/order_logistics_sync/models/order.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PURCHASED = "Purchased"
    READY_TO_SHIP = "Ready to Ship"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @property
    def rank(self) -> int:
        """Position in the main lifecycle; Cancelled sits outside it (-1)."""
        try:
            return TIMELINE_STEPS.index(self)
        except ValueError:
            return -1

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """Accept wire values ("Ready to Ship") and member names ("READY_TO_SHIP")."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        # "ReadyToShip" / "ready-to-ship" style spellings
        squashed = "".join(ch for ch in text if ch.isalnum()).casefold()
        for member in cls:
            if squashed == "".join(ch for ch in member.value if ch.isalnum()).casefold():
                return member
        raise ValueError(f"Unknown order status: {value!r}")


TIMELINE_STEPS: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PURCHASED,
    OrderStatus.READY_TO_SHIP,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().casefold() in {"1", "true", "yes", "y"}


def new_id() -> str:
    return uuid.uuid4().hex[:12]


# camelCase wire key -> dataclass attribute
_ORDER_KEYS: dict[str, str] = {
    "id": "id",
    "itemName": "item_name",
    "quantity": "quantity",
    "priceUSD": "price_usd",
    "buyerAddress": "buyer_address",
    "purchaseDate": "purchase_date",
    "platform": "platform",
    "platformOrderId": "platform_order_id",
    "clientOrderId": "client_order_id",
    "status": "status",
    "trackingNumber": "tracking_number",
    "supplierTrackingNumber": "supplier_tracking_number",
    "detailedStatus": "detailed_status",
    "imageUrl": "image_url",
    "notes": "notes",
    "lastUpdated": "last_updated",
    "deleted": "deleted",
    "deletedAt": "deleted_at",
}


@dataclass(frozen=True)
class Order:
    """One procurement order.

    ``tracking_number`` is the customer leg (forwarding point to end customer);
    ``supplier_tracking_number`` is the supplier leg (merchant to forwarding point).
    """

    id: str
    status: OrderStatus = OrderStatus.PENDING
    item_name: str = ""
    quantity: int = 1
    price_usd: float = 0.0
    buyer_address: str = ""
    purchase_date: str = ""
    platform: str = ""
    platform_order_id: Optional[str] = None
    client_order_id: Optional[str] = None

    # logistics
    tracking_number: Optional[str] = None
    supplier_tracking_number: Optional[str] = None
    detailed_status: Optional[str] = None

    image_url: Optional[str] = None
    notes: Optional[str] = None
    last_updated: str = ""

    # soft delete
    deleted: bool = False
    deleted_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return not self.deleted and not self.status.is_terminal

    @property
    def has_tracking(self) -> bool:
        return bool(self.tracking_number or self.supplier_tracking_number)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        """Build from a camelCase record (JSON store, CSV row); unknown keys are ignored."""
        kwargs: dict[str, Any] = {}
        for key, attr in _ORDER_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
            elif attr in data:
                kwargs[attr] = data[attr]

        if not _opt_str(kwargs.get("id")):
            kwargs["id"] = new_id()
        kwargs["id"] = str(kwargs["id"]).strip()
        kwargs["status"] = OrderStatus.parse(
            kwargs.get("status") or OrderStatus.PENDING)
        kwargs["quantity"] = int(float(kwargs.get("quantity") or 1))
        kwargs["price_usd"] = float(kwargs.get("price_usd") or 0.0)
        kwargs["deleted"] = _as_bool(kwargs.get("deleted"))
        for attr in ("item_name", "buyer_address", "purchase_date", "platform", "last_updated"):
            kwargs[attr] = str(kwargs.get(attr) or "")
        for attr in (
            "platform_order_id",
            "client_order_id",
            "tracking_number",
            "supplier_tracking_number",
            "detailed_status",
            "image_url",
            "notes",
            "deleted_at",
        ):
            kwargs[attr] = _opt_str(kwargs.get(attr))
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """camelCase record; optional fields that are unset are omitted."""
        out: dict[str, Any] = {}
        for key, attr in _ORDER_KEYS.items():
            value = getattr(self, attr)
            if attr == "status":
                value = self.status.value
            if value is None:
                continue
            if attr == "deleted" and not value:
                continue
            out[key] = value
        return out


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    address: str = ""
    phone: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    notes: Optional[str] = None
    last_order_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Customer":
        tags = data.get("tags") or ()
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(";") if t.strip()]
        return cls(
            id=str(data.get("id") or new_id()),
            name=str(data.get("name") or ""),
            address=str(data.get("address") or ""),
            phone=_opt_str(data.get("phone")),
            tags=tuple(str(t) for t in tags),
            notes=_opt_str(data.get("notes")),
            last_order_date=_opt_str(data.get("lastOrderDate")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id,
                               "name": self.name, "address": self.address}
        if self.phone:
            out["phone"] = self.phone
        if self.tags:
            out["tags"] = list(self.tags)
        if self.notes:
            out["notes"] = self.notes
        if self.last_order_date:
            out["lastOrderDate"] = self.last_order_date
        return out
