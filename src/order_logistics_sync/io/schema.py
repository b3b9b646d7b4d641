# src/order_logistics_sync/io/schema.py
from __future__ import annotations

# (record key, CSV header) in export order
CSV_COLUMNS: list[tuple[str, str]] = [
    ("id", "Order ID"),
    ("clientOrderId", "Client Order ID"),
    ("platformOrderId", "Platform Order ID"),
    ("itemName", "Item Name"),
    ("quantity", "Quantity"),
    ("priceUSD", "Price (USD)"),
    ("status", "Status"),
    ("detailedStatus", "Detailed Status"),
    ("platform", "Platform"),
    ("buyerAddress", "Buyer Address"),
    ("purchaseDate", "Purchase Date"),
    ("supplierTrackingNumber", "Supplier Tracking Number"),
    ("trackingNumber", "Tracking Number"),
    ("notes", "Notes"),
    ("lastUpdated", "Last Updated"),
]

HEADER_TO_KEY: dict[str, str] = {header: key for key, header in CSV_COLUMNS}

# Fields a batch logistics update may touch
TRACKING_UPDATE_KEYS: tuple[str, ...] = ("trackingNumber", "supplierTrackingNumber")

# Excel opens UTF-8 CSVs correctly only with a BOM
CSV_ENCODING = "utf-8-sig"

BACKUP_VERSION = 1
