from __future__ import annotations
from dataclasses import dataclass

DEFAULT_TRACKING17_BASE_URL = "https://api.17track.net"


@dataclass(frozen=True)
class WarningRules:
    """Thresholds for the delay warnings shown on the dashboard."""
    purchase_timeout_hours: float = 48
    shipping_timeout_days: float = 7
    impending_buffer_hours: float = 24


@dataclass(frozen=True)
class EnvCfg:
    """Shape we need from get_app_env()."""
    TRACKING17_TOKEN: str = ""
    TRACKING17_BASE_URL: str = DEFAULT_TRACKING17_BASE_URL
    TRACKING17_TIMEOUT: int = 30
    SYNC_INFER_SHIPPED_FROM_CUSTOMER_TRACKING: bool = False
    warning_rules: WarningRules = WarningRules()
