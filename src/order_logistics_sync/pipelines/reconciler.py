from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Iterable, Optional

from order_logistics_sync.api.tracking17 import Tracking17Config
from order_logistics_sync.models import Order, ProviderError, SyncResult
from order_logistics_sync.pipelines.tracking_adapter import TrackingAdapter, trackable_numbers
from order_logistics_sync.rules.heuristics import SyncPolicy, infer_outcome
from order_logistics_sync.rules.status_mapper import StatusOutcome, resolve_order_outcome
from order_logistics_sync.utils.clock import Clock, stamp_after, utc_now

MSG_HEURISTIC_UPDATED = "Updated {count} order(s) via local inference"
MSG_NOTHING_TO_UPDATE = "Nothing to update: no status changes detected"
MSG_NOTHING_TO_SYNC = "Nothing to sync: no active orders carry a tracking number"
MSG_REMOTE_UPDATED = "Sync succeeded: updated {count} order(s) from tracking provider"
MSG_REMOTE_UNCHANGED = "Sync succeeded: nothing to update"
MSG_FALLBACK = "Tracking provider unavailable ({reason}); {message}"


def _apply(order: Order, outcome: Optional[StatusOutcome], stamp: Callable[[str], str]) -> Order:
    """Patched copy of `order`, or the same object when nothing changes."""
    if outcome is None:
        return order

    changes: dict[str, Any] = {}
    if outcome.advances(order.status):
        changes["status"] = outcome.target
    if outcome.detail and outcome.detail != order.detailed_status:
        changes["detailed_status"] = outcome.detail
    if not changes:
        return order

    changes["last_updated"] = stamp(order.last_updated)
    return dataclasses.replace(order, **changes)


class Reconciler:
    """Reconciles orders against tracking signals.

    Heuristic mode (empty credential) never touches the network. Remote mode
    asks the provider once per pass and falls back to heuristics on any
    provider failure. The input list is never mutated; inactive orders come
    back as the very same objects.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        *,
        adapter: Optional[TrackingAdapter] = None,
        adapter_factory: Optional[Callable[[str], TrackingAdapter]] = None,
        policy: SyncPolicy = SyncPolicy(),
        clock: Clock = utc_now,
    ) -> None:
        self.logger = logger or logging.getLogger(
            "order_logistics_sync.pipelines.reconciler")
        self.adapter = adapter
        self.adapter_factory = adapter_factory or (
            lambda token: TrackingAdapter.from_config(Tracking17Config(token=token)))
        self.policy = policy
        self.clock = clock

    # --- passes ---------------------------------------------------------------

    def _run(self, orders: list[Order], decide: Callable[[Order], Optional[StatusOutcome]]) -> tuple[list[Order], int]:
        now = self.clock()

        def stamp(previous: str) -> str:
            return stamp_after(now, previous)

        out: list[Order] = []
        changed = 0
        for order in orders:
            if not order.is_active or not order.has_tracking:
                out.append(order)
                continue
            patched = _apply(order, decide(order), stamp)
            if patched is not order:
                changed += 1
                self.logger.debug(
                    "order %s: %s/%r -> %s/%r",
                    order.id,
                    order.status.value,
                    order.detailed_status,
                    patched.status.value,
                    patched.detailed_status,
                )
            out.append(patched)
        return out, changed

    def apply_heuristics(self, orders: Iterable[Order]) -> tuple[list[Order], int]:
        return self._run(list(orders), lambda o: infer_outcome(o, self.policy))

    def apply_provider_statuses(self, orders: Iterable[Order], status_by_number: dict[str, str]) -> tuple[list[Order], int]:
        return self._run(list(orders), lambda o: resolve_order_outcome(o, status_by_number))

    # --- entry points ---------------------------------------------------------

    def reconcile_heuristic(self, orders: Iterable[Order]) -> SyncResult:
        updated, changed = self.apply_heuristics(orders)
        message = MSG_HEURISTIC_UPDATED.format(
            count=changed) if changed else MSG_NOTHING_TO_UPDATE
        self.logger.info("Heuristic sync: %s", message)
        return SyncResult(updated, changed, message, mode="heuristic")

    def _fallback(self, orders: list[Order], reason: str) -> SyncResult:
        self.logger.warning(
            "Falling back to local inference: %s", reason)
        result = self.reconcile_heuristic(orders)
        return dataclasses.replace(
            result,
            message=MSG_FALLBACK.format(reason=reason, message=result.message),
            mode="fallback",
        )

    def reconcile_remote(self, orders: Iterable[Order], credential: str) -> SyncResult:
        orders = list(orders)
        active = [o for o in orders if o.is_active]
        numbers = trackable_numbers(active)
        if not numbers:
            self.logger.info(MSG_NOTHING_TO_SYNC)
            return SyncResult(orders, 0, MSG_NOTHING_TO_SYNC, mode="remote")

        self.logger.info(
            "Querying tracking provider for %d number(s) across %d active order(s)",
            len(numbers),
            len(active),
        )
        owned = None
        try:
            adapter = self.adapter
            if adapter is None:
                # built per pass, so closed per pass
                adapter = owned = self.adapter_factory(credential)
            result = adapter.fetch_statuses(numbers)
        except Exception as ex:
            return self._fallback(orders, f"unexpected error: {ex}")
        finally:
            if owned is not None:
                owned.close()

        if isinstance(result, ProviderError):
            return self._fallback(orders, result.reason)

        updated, changed = self.apply_provider_statuses(
            orders, result.status_by_number)
        message = MSG_REMOTE_UPDATED.format(
            count=changed) if changed else MSG_REMOTE_UNCHANGED
        self.logger.info("Remote sync: %s", message)
        return SyncResult(updated, changed, message, mode="remote")

    def reconcile(self, orders: Iterable[Order], credential: str = "") -> SyncResult:
        credential = (credential or "").strip()
        if not credential:
            return self.reconcile_heuristic(orders)
        return self.reconcile_remote(orders, credential)


def reconcile(
    orders: Iterable[Order],
    credential: str = "",
    *,
    adapter: Optional[TrackingAdapter] = None,
    policy: SyncPolicy = SyncPolicy(),
    clock: Clock = utc_now,
    logger: Optional[logging.Logger] = None,
) -> SyncResult:
    """Functional wrapper around Reconciler.reconcile()."""
    return Reconciler(logger, adapter=adapter, policy=policy, clock=clock).reconcile(orders, credential)
