from __future__ import annotations

import datetime as dt

import pytest

from order_logistics_sync.api.tracking17 import ProviderUnavailable
from order_logistics_sync.models import Order, OrderStatus, ProviderError, ProviderOk
from order_logistics_sync.pipelines.reconciler import (
    MSG_NOTHING_TO_SYNC,
    MSG_NOTHING_TO_UPDATE,
    Reconciler,
    reconcile,
)
from order_logistics_sync.pipelines.tracking_adapter import TrackingAdapter
from order_logistics_sync.rules.heuristics import SyncPolicy

NOW = dt.datetime(2025, 6, 1, 9, 30, tzinfo=dt.timezone.utc)
EARLIER = "2025-05-20T08:00:00.000Z"


def fixed_clock():
    return NOW


class QuietLogger:
    def debug(self, *a, **k): pass
    def info(self, *a, **k): pass
    def warning(self, *a, **k): pass
    def error(self, *a, **k): pass


class StubAdapter:
    """Returns a canned ProviderResult and records the numbers it was asked for."""

    def __init__(self, result):
        self.result = result
        self.calls: list[list[str]] = []

    def fetch_statuses(self, numbers):
        self.calls.append(list(numbers))
        return self.result


class ExplodingAdapter:
    def fetch_statuses(self, numbers):
        pytest.fail("provider must not be called in heuristic mode")


def _reconciler(adapter=None, **kw):
    return Reconciler(QuietLogger(), adapter=adapter, clock=fixed_clock, **kw)


def _by_id(result):
    return {o.id: o for o in result.updated_orders}


# --- heuristic mode ---------------------------------------------------------


def test_scenario_pending_with_supplier_tracking_becomes_purchased():
    orders = [Order(id="A", status=OrderStatus.PENDING,
                    supplier_tracking_number="SF123", last_updated=EARLIER)]

    res = reconcile(orders, "", clock=fixed_clock)

    a = _by_id(res)["A"]
    assert a.status is OrderStatus.PURCHASED
    assert "supplier shipped" in a.detailed_status.lower()
    assert res.changed_count == 1
    assert res.mode == "heuristic"
    assert "1" in res.message


def test_heuristic_mode_never_calls_provider():
    orders = [Order(id="A", supplier_tracking_number="SF1"),
              Order(id="B", tracking_number="YT1")]

    rec = Reconciler(QuietLogger(), adapter_factory=lambda token: ExplodingAdapter(),
                     clock=fixed_clock)
    res = rec.reconcile(orders, "")

    assert res.changed_count == 1


def test_heuristic_nothing_to_update_message():
    res = _reconciler().reconcile([Order(id="A")], "")
    assert res.changed_count == 0
    assert res.message == MSG_NOTHING_TO_UPDATE


def test_empty_collection_is_fine():
    res = _reconciler().reconcile([], "")
    assert res.updated_orders == [] and res.changed_count == 0


def test_variant_policy_advances_customer_tracked_orders():
    orders = [Order(id="A", status=OrderStatus.PURCHASED, tracking_number="YT1")]
    res = _reconciler(policy=SyncPolicy(
        infer_shipped_from_customer_tracking=True)).reconcile(orders, "")
    assert _by_id(res)["A"].status is OrderStatus.SHIPPED


# --- inactive / inert orders ----------------------------------------------------


@pytest.mark.parametrize("credential", ["", "token"])
def test_terminal_and_deleted_orders_are_untouched(credential):
    delivered = Order(id="D", status=OrderStatus.DELIVERED,
                      tracking_number="YT1", last_updated=EARLIER)
    cancelled = Order(id="C", status=OrderStatus.CANCELLED,
                      supplier_tracking_number="SF1", last_updated=EARLIER)
    deleted = Order(id="X", status=OrderStatus.PENDING, supplier_tracking_number="SF2",
                    deleted=True, deleted_at=EARLIER, last_updated=EARLIER)
    orders = [delivered, cancelled, deleted]
    adapter = StubAdapter(ProviderOk({"YT1": "10", "SF1": "40", "SF2": "10"}))

    res = _reconciler(adapter).reconcile(orders, credential)

    assert res.changed_count == 0
    for before, after in zip(orders, res.updated_orders):
        assert after is before
        assert after.to_dict() == before.to_dict()
    # nothing active with tracking -> no provider call at all
    assert adapter.calls == []


def test_orders_without_tracking_are_inert_in_remote_mode():
    plain = Order(id="P", status=OrderStatus.PENDING, last_updated=EARLIER)
    tracked = Order(id="T", status=OrderStatus.PENDING, supplier_tracking_number="SF1")
    adapter = StubAdapter(ProviderOk({"SF1": "10"}))

    res = _reconciler(adapter).reconcile([plain, tracked], "token")

    assert adapter.calls == [["SF1"]]
    assert res.updated_orders[0] is plain
    assert res.changed_count == 1


def test_no_trackable_orders_reports_nothing_to_sync():
    adapter = StubAdapter(ProviderOk({}))
    res = _reconciler(adapter).reconcile([Order(id="A")], "token")
    assert res.message == MSG_NOTHING_TO_SYNC
    assert adapter.calls == []


# --- remote mode ------------------------------------------------------------------


def test_customer_leg_delivered_code_delivers_shipped_order():
    orders = [Order(id="A", status=OrderStatus.SHIPPED, tracking_number="YT1",
                    last_updated=EARLIER)]
    res = _reconciler(StubAdapter(ProviderOk({"YT1": "40"}))).reconcile(orders, "token")

    a = _by_id(res)["A"]
    assert a.status is OrderStatus.DELIVERED
    assert res.changed_count == 1
    assert res.mode == "remote"


def test_supplier_leg_in_transit_code_marks_pending_purchased():
    orders = [Order(id="A", status=OrderStatus.PENDING, supplier_tracking_number="SF1")]
    res = _reconciler(StubAdapter(ProviderOk({"SF1": "10"}))).reconcile(orders, "token")

    a = _by_id(res)["A"]
    assert a.status is OrderStatus.PURCHASED
    assert "supplier shipped" in a.detailed_status.lower()


def test_supplier_leg_delivered_means_ready_to_ship():
    orders = [Order(id="A", status=OrderStatus.PURCHASED, supplier_tracking_number="SF1")]
    res = _reconciler(StubAdapter(ProviderOk({"SF1": "40"}))).reconcile(orders, "token")
    assert _by_id(res)["A"].status is OrderStatus.READY_TO_SHIP


def test_exception_code_changes_detail_only_and_counts():
    orders = [Order(id="A", status=OrderStatus.SHIPPED, tracking_number="YT1",
                    detailed_status="In transit", last_updated=EARLIER)]
    res = _reconciler(StubAdapter(ProviderOk({"YT1": "35"}))).reconcile(orders, "token")

    a = _by_id(res)["A"]
    assert a.status is OrderStatus.SHIPPED
    assert "failed" in a.detailed_status.lower()
    assert a.last_updated != EARLIER
    assert res.changed_count == 1


def test_never_regresses_status():
    orders = [Order(id="A", status=OrderStatus.READY_TO_SHIP, supplier_tracking_number="SF1")]
    res = _reconciler(StubAdapter(ProviderOk({"SF1": "10"}))).reconcile(orders, "token")
    assert _by_id(res)["A"].status is OrderStatus.READY_TO_SHIP


def test_one_batched_call_with_both_legs():
    orders = [
        Order(id="A", supplier_tracking_number="SF1", tracking_number="YT1"),
        Order(id="B", supplier_tracking_number="SF2"),
        Order(id="C", supplier_tracking_number="SF1"),
    ]
    adapter = StubAdapter(ProviderOk({}))
    _reconciler(adapter).reconcile(orders, "token")
    assert adapter.calls == [["SF1", "SF2", "YT1"]]


# --- fallback ---------------------------------------------------------------------


@pytest.mark.parametrize("adapter", [
    StubAdapter(ProviderError("HTTP 500")),
    StubAdapter(ProviderError("provider error code 1")),
])
def test_provider_failure_falls_back_to_heuristics(adapter):
    orders = [
        Order(id="A", status=OrderStatus.PENDING, supplier_tracking_number="SF1"),
        Order(id="B", status=OrderStatus.SHIPPED, tracking_number="YT1"),
    ]

    remote = _reconciler(adapter).reconcile(orders, "token")
    local = _reconciler().reconcile(orders, "")

    assert remote.updated_orders == local.updated_orders
    assert remote.changed_count == local.changed_count == 1
    assert remote.mode == "fallback"
    assert "unavailable" in remote.message.lower()


def test_unexpected_adapter_exception_also_falls_back():
    class Broken:
        def fetch_statuses(self, numbers):
            raise ProviderUnavailable("socket closed")

    orders = [Order(id="A", supplier_tracking_number="SF1")]
    res = _reconciler(Broken()).reconcile(orders, "token")
    assert res.mode == "fallback"
    assert _by_id(res)["A"].status is OrderStatus.PURCHASED


def test_http_500_through_real_adapter_falls_back():
    import requests

    class Transport500:
        def post(self, url, *, headers=None, json=None):
            r = requests.Response()
            r.status_code = 500
            r._content = b'{"error": "internal"}'
            return r

    from order_logistics_sync.api.tracking17 import Tracking17Client, Tracking17Config

    adapter = TrackingAdapter(Tracking17Client(
        Tracking17Config(token="t"), transport=Transport500()))
    orders = [Order(id="A", supplier_tracking_number="SF1")]

    res = _reconciler(adapter).reconcile(orders, "t")

    assert res.mode == "fallback"
    assert res.updated_orders == _reconciler().reconcile(orders, "").updated_orders


# --- timestamps, idempotence, copy-on-write ----------------------------------------


def test_last_updated_strictly_increases_even_when_clock_lags():
    future = "2025-06-01T09:30:00.000Z"   # equal to NOW
    orders = [Order(id="A", supplier_tracking_number="SF1", last_updated=future)]

    res = _reconciler().reconcile(orders, "")

    assert _by_id(res)["A"].last_updated == "2025-06-01T09:30:00.001Z"


def test_last_updated_uses_clock():
    orders = [Order(id="A", supplier_tracking_number="SF1", last_updated=EARLIER)]
    res = _reconciler().reconcile(orders, "")
    assert _by_id(res)["A"].last_updated == "2025-06-01T09:30:00.000Z"


@pytest.mark.parametrize("statuses", [
    {"SF1": "10", "YT1": "0", "SF2": "40", "YT3": "40", "YT4": "20"},
    {"SF1": "30", "SF2": "10", "YT3": "10"},
])
def test_second_pass_is_a_no_op(statuses):
    orders = [
        Order(id="A", supplier_tracking_number="SF1", tracking_number="YT1"),
        Order(id="B", status=OrderStatus.PURCHASED, supplier_tracking_number="SF2"),
        Order(id="C", status=OrderStatus.PURCHASED, tracking_number="YT3"),
        Order(id="D", status=OrderStatus.SHIPPED, tracking_number="YT4"),
    ]
    rec = _reconciler(StubAdapter(ProviderOk(statuses)))

    first = rec.reconcile(orders, "token")
    second = rec.reconcile(first.updated_orders, "token")

    assert first.changed_count > 0
    assert second.changed_count == 0
    assert second.updated_orders == first.updated_orders


def test_input_collection_is_not_mutated():
    original = Order(id="A", supplier_tracking_number="SF1", last_updated=EARLIER)
    orders = [original]

    res = _reconciler().reconcile(orders, "")

    assert orders[0] is original
    assert original.status is OrderStatus.PENDING
    assert res.updated_orders is not orders


# --- both legs reporting in one pass -------------------------------------------------


def test_supplier_advance_detail_when_customer_number_unknown():
    orders = [Order(id="A", status=OrderStatus.PENDING,
                    supplier_tracking_number="SF1", tracking_number="YT1")]
    rec = _reconciler(StubAdapter(ProviderOk({"SF1": "10", "YT1": "0"})))

    first = rec.reconcile(orders, "token")
    second = rec.reconcile(first.updated_orders, "token")

    a = _by_id(first)["A"]
    assert a.status is OrderStatus.PURCHASED
    assert "supplier shipped" in a.detailed_status.lower()
    assert second.changed_count == 0


def test_supplier_warehouse_detail_when_customer_leg_has_exception():
    orders = [Order(id="B", status=OrderStatus.PURCHASED,
                    supplier_tracking_number="SF2", tracking_number="YT2")]
    rec = _reconciler(StubAdapter(ProviderOk({"SF2": "40", "YT2": "20"})))

    first = rec.reconcile(orders, "token")
    second = rec.reconcile(first.updated_orders, "token")

    b = _by_id(first)["B"]
    assert b.status is OrderStatus.READY_TO_SHIP
    assert "warehouse" in b.detailed_status.lower()
    assert second.changed_count == 0


# --- adapter lifetime -----------------------------------------------------------------


class ClosableAdapter(StubAdapter):
    def __init__(self, result):
        super().__init__(result)
        self.closed = 0

    def close(self):
        self.closed += 1


@pytest.mark.parametrize("result", [ProviderOk({"SF1": "10"}), ProviderError("HTTP 503")])
def test_factory_built_adapter_is_closed_after_the_pass(result):
    built = []

    def factory(token):
        built.append(ClosableAdapter(result))
        return built[-1]

    rec = Reconciler(QuietLogger(), adapter_factory=factory, clock=fixed_clock)
    rec.reconcile([Order(id="A", supplier_tracking_number="SF1")], "token")

    assert len(built) == 1 and built[0].closed == 1


def test_injected_adapter_is_left_open():
    adapter = ClosableAdapter(ProviderOk({"SF1": "10"}))
    _reconciler(adapter).reconcile([Order(id="A", supplier_tracking_number="SF1")], "token")
    assert adapter.closed == 0


def test_module_reconcile_closes_its_http_session(monkeypatch):
    import requests

    closed = []

    def fake_post(self, url, *, headers=None, json=None):
        r = requests.Response()
        r.status_code = 200
        r._content = (b'{"code": 0, "data": {"accepted": [{"number": "SF1", '
                      b'"track_info": {"latest_status": {"status": "10"}}}]}}')
        return r

    monkeypatch.setattr(
        "order_logistics_sync.api.transport.RequestsTransport.post", fake_post)
    monkeypatch.setattr(
        "order_logistics_sync.api.transport.RequestsTransport.close",
        lambda self: closed.append(self))

    res = reconcile([Order(id="A", supplier_tracking_number="SF1")], "tok",
                    clock=fixed_clock, logger=QuietLogger())

    assert res.mode == "remote"
    assert len(closed) == 1
