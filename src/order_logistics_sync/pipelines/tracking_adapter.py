from __future__ import annotations

from typing import Any, Iterable, List, Optional
import logging

from order_logistics_sync.api.client import TrackingClient
from order_logistics_sync.api.normalize import accepted_numbers, parse_track_response
from order_logistics_sync.api.tracking17 import (
    ProviderUnavailable,
    Tracking17Client,
    Tracking17Config,
)
from order_logistics_sync.models import Order, ProviderError, ProviderOk, ProviderResult


def trackable_numbers(orders: Iterable[Order]) -> List[str]:
    """
    Ordered, de-duplicated tracking numbers for a provider request:
    supplier-leg numbers first, then customer-leg numbers.
    """
    orders = list(orders)
    seen: set[str] = set()
    out: List[str] = []
    for attr in ("supplier_tracking_number", "tracking_number"):
        for order in orders:
            tn = getattr(order, attr)
            if tn and tn not in seen:
                seen.add(tn)
                out.append(tn)
    return out


class TrackingAdapter:
    """Exposes fetch_statuses() to the reconciler.

    One call to fetch_statuses() is one POST to the provider, whatever the
    number count. Raw bodies are optionally persisted through `writer`.
    """

    def __init__(self, client: TrackingClient, writer: Optional[Any] = None, logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._writer = writer
        self._logger = logger or logging.getLogger(
            "order_logistics_sync.pipelines.tracking_adapter")

    @classmethod
    def from_config(cls, cfg: Tracking17Config, *, writer: Optional[Any] = None,
                    logger: Optional[logging.Logger] = None) -> "TrackingAdapter":
        return cls(Tracking17Client(cfg, logger=logger), writer=writer, logger=logger)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()

    def fetch_statuses(self, tracking_numbers: Iterable[str]) -> ProviderResult:
        numbers = list(dict.fromkeys(n for n in tracking_numbers if n))
        if not numbers:
            return ProviderOk({})

        try:
            body = self._client.post_tracking(numbers)
        except ProviderUnavailable as ex:
            self._logger.warning("Tracking provider unavailable: %s", ex)
            return ProviderError(str(ex))

        if self._writer is not None:
            self._writer.add_response(body)

        result = parse_track_response(body)
        if isinstance(result, ProviderError):
            self._logger.warning(
                "Tracking provider returned an unusable body: %s", result.reason)
            return result

        accepted = set(accepted_numbers(body))
        rejected = [n for n in numbers if n not in accepted]
        if rejected:
            self._logger.info(
                "Provider did not accept %d of %d number(s): %s", len(rejected), len(numbers), rejected)
        missing = [n for n in numbers if n in accepted and n not in result.status_by_number]
        if missing:
            self._logger.info(
                "Provider reported no status for %d accepted number(s)", len(missing))
        self._logger.debug("Provider statuses: %s", result.status_by_number)
        return result
