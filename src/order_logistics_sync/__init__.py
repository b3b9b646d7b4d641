# src/order_logistics_sync/__init__.py
from .models import Order, OrderStatus, SyncResult
from .pipelines.reconciler import Reconciler, reconcile
from .rules.heuristics import SyncPolicy

__all__ = [
    "Order",
    "OrderStatus",
    "SyncResult",
    "SyncPolicy",
    "Reconciler",
    "reconcile",
]
