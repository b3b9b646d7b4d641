from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from .order import Order

SyncMode = Literal["heuristic", "remote", "fallback"]


@dataclass(frozen=True)
class ProviderOk:
    """Parsed provider reply: tracking number -> provider status code (as string)."""
    status_by_number: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderError:
    """The provider could not be used for this pass (network, HTTP, payload)."""
    reason: str


ProviderResult = Union[ProviderOk, ProviderError]


@dataclass(frozen=True)
class SyncResult:
    updated_orders: list[Order]
    changed_count: int
    message: str
    mode: SyncMode = "heuristic"

    @property
    def changed(self) -> bool:
        return self.changed_count > 0


@dataclass(frozen=True)
class OrderStats:
    total_orders: int = 0
    total_spent: float = 0.0
    active_orders: int = 0
    pending_orders: int = 0
    delivered_orders: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
