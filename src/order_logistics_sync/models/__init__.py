from .env_cfg import EnvCfg, WarningRules
from .order import (
    TERMINAL_STATUSES,
    TIMELINE_STEPS,
    Customer,
    Order,
    OrderStatus,
)
from .results import (
    OrderStats,
    ProviderError,
    ProviderOk,
    ProviderResult,
    SyncResult,
)

__all__ = [
    "EnvCfg",
    "WarningRules",
    "Order",
    "OrderStatus",
    "Customer",
    "TIMELINE_STEPS",
    "TERMINAL_STATUSES",
    "ProviderOk",
    "ProviderError",
    "ProviderResult",
    "SyncResult",
    "OrderStats",
]
