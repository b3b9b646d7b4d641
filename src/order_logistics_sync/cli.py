# src/order_logistics_sync/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config.logging_config import default_log_path_for_input, get_logger
from .config.env import EnvError, get_app_env
from .io.store import OrderStore, StoreError
from .pipelines.reconciler import Reconciler
from .rules.heuristics import SyncPolicy


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="order-logistics-sync",
        description="Reconcile order statuses in an orders JSON file against tracking signals.",
    )
    p.add_argument("input", type=Path, help="Path to the orders .json file.")
    p.add_argument(
        "--token",
        default=None,
        help="17TRACK API token. Overrides TRACKING17_TOKEN; empty means local inference only.",
    )
    p.add_argument(
        "--replay-file",
        type=Path,
        default=None,
        help="JSON file of recorded 17TRACK response bodies to use instead of the live API.",
    )
    p.add_argument(
        "--save-bodies",
        type=Path,
        default=None,
        help="Append raw 17TRACK response bodies to this JSON file.",
    )
    p.add_argument(
        "--infer-shipped",
        action="store_true",
        help="Local inference: treat a customer tracking number as proof the order shipped.",
    )
    p.add_argument(
        "--restore",
        type=Path,
        default=None,
        help="Replace the orders with those in this JSON backup before any other step.",
    )
    p.add_argument(
        "--import-csv",
        type=Path,
        default=None,
        help="Merge orders from this CSV into the store before reconciling (same id replaces).",
    )
    p.add_argument(
        "--tracking-csv",
        type=Path,
        default=None,
        help="CSV of id/platformOrderId + tracking numbers to apply before reconciling.",
    )
    p.add_argument(
        "--export-csv",
        type=Path,
        default=None,
        help="Also export the reconciled orders to this CSV file.",
    )
    p.add_argument(
        "--backup",
        type=Path,
        default=None,
        help="Also write a full JSON backup of the reconciled orders.",
    )
    p.add_argument(
        "--report",
        action="store_true",
        help="Print dashboard counters and delayed / impending orders after the sync.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing the orders file.",
    )
    p.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains).",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO",
    )
    p.add_argument(
        "--strict-env",
        action="store_true",
        help="Require TRACKING17_TOKEN to be present; otherwise exit 2.",
    )
    return p


def _build_adapter(args, env_cfg, logger):
    """Adapter for replay or live mode."""
    from .api.writer import ResponseWriter
    from .pipelines.tracking_adapter import TrackingAdapter

    writer = ResponseWriter(args.save_bodies) if args.save_bodies else None

    if args.replay_file:
        from .api.client import ReplayClient

        logger.info("Replay mode enabled: %s", args.replay_file)
        return TrackingAdapter(ReplayClient(args.replay_file), writer=writer, logger=logger)

    from .api.tracking17 import Tracking17Config

    cfg = Tracking17Config(
        token=(args.token if args.token is not None else env_cfg.TRACKING17_TOKEN).strip(),
        base_url=env_cfg.TRACKING17_BASE_URL,
        timeout=env_cfg.TRACKING17_TIMEOUT,
    )
    return TrackingAdapter.from_config(cfg, writer=writer, logger=logger)


def _prepare_orders(args, orders, logger):
    """Apply --restore, --import-csv and --tracking-csv; returns (orders, changed)."""
    from .io.csv_io import apply_tracking_updates, import_orders_csv, merge_imported, read_csv_rows
    from .io.store import load_backup
    from .utils.clock import to_iso, utc_now

    changed = 0
    if args.restore:
        restored, customers = load_backup(args.restore)
        if restored != orders:
            changed += 1
        orders = restored
        logger.info("Restored %d order(s) and %d customer(s) from %s",
                    len(restored), len(customers), args.restore)

    if args.import_csv:
        imported = import_orders_csv(args.import_csv)
        existing = {o.id: o for o in orders}
        differing = sum(1 for o in imported if existing.get(o.id) != o)
        orders = merge_imported(orders, imported)
        changed += differing
        logger.info("Merged %d imported order(s) from %s (%d new or changed)",
                    len(imported), args.import_csv, differing)

    if args.tracking_csv:
        orders, updated = apply_tracking_updates(
            orders, read_csv_rows(args.tracking_csv), stamp=to_iso(utc_now()))
        changed += updated
        logger.info("Batch tracking update touched %d order(s)", updated)

    return orders, changed


def _report(orders, rules, logger) -> list[str]:
    from .pipelines.metrics import summarize_orders
    from .rules.delays import delayed_orders, is_impending

    stats = summarize_orders(orders)
    lines = [
        f"Orders: {stats.total_orders} (active {stats.active_orders}, "
        f"pending {stats.pending_orders}, delivered {stats.delivered_orders})",
        f"Total spent: ${stats.total_spent:.2f}",
        "By status: " + ", ".join(f"{k}={v}" for k, v in stats.by_status.items()),
    ]
    delayed = delayed_orders(orders, rules)
    delayed_ids = {o.id for o, _ in delayed}
    for order, kind in delayed:
        lines.append(f"DELAYED ({kind}): {order.id} {order.item_name}".rstrip())
    for order in orders:
        if order.id not in delayed_ids and is_impending(order, rules):
            lines.append(f"Due soon: {order.id} {order.item_name}".rstrip())

    for line in lines:
        logger.info(line)
    return lines


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if not args.input.exists() and not (args.import_csv or args.restore):
        print(f"error: input file not found: {args.input}", file=sys.stderr)
        return 2

    log_path = default_log_path_for_input(args.input)
    logger = get_logger(
        "order_logistics_sync",
        level=args.log_level,
        console=not args.no_console,
        log_file=log_path,
    )
    logger.info("Input: %s", args.input)
    logger.info("Log file: %s", log_path)

    try:
        env_cfg = get_app_env(strict=args.strict_env)
    except (EnvError, ValueError) as e:
        logger.error("Environment error: %s", e)
        return 2

    token = args.token if args.token is not None else env_cfg.TRACKING17_TOKEN
    logger = get_logger(
        "order_logistics_sync",
        level=args.log_level,
        console=not args.no_console,
        log_file=log_path,
        redact=[token] if token else (),
    )
    if args.replay_file:
        # replays need a non-empty credential to take the remote path
        token = token or "replay"
    if not token:
        logger.info("No tracking token configured; using local inference only.")

    store = OrderStore(args.input, logger=logger)
    try:
        orders = store.load()
    except StoreError as e:
        logger.error("Could not load orders: %s", e)
        return 2

    try:
        orders, prepared = _prepare_orders(args, orders, logger)

        adapter = _build_adapter(args, env_cfg, logger) if token else None
        reconciler = Reconciler(
            logger,
            adapter=adapter,
            policy=SyncPolicy(
                infer_shipped_from_customer_tracking=(
                    args.infer_shipped or env_cfg.SYNC_INFER_SHIPPED_FROM_CUSTOMER_TRACKING
                )
            ),
        )
        try:
            result = reconciler.reconcile(orders, token)
        finally:
            if adapter is not None:
                adapter.close()
        logger.info("%s (mode=%s)", result.message, result.mode)

        if (prepared or result.changed_count) and not args.dry_run:
            store.save(result.updated_orders)
            logger.info("Wrote %d order(s) -> %s",
                        len(result.updated_orders), args.input)

        if args.export_csv:
            from .io.csv_io import export_orders_csv

            export_orders_csv(result.updated_orders, args.export_csv)

        if args.backup:
            from .io.store import export_backup

            export_backup(args.backup, result.updated_orders)
            logger.info("Backup written -> %s", args.backup)

        report = _report(result.updated_orders,
                         env_cfg.warning_rules, logger) if args.report else []
    except (StoreError, ValueError) as e:
        logger.error("%s", e)
        return 2
    except Exception as e:
        logger.exception("Failed to reconcile orders: %s", e)
        return 1

    print(result.message)
    for line in report:
        print(line)
    logger.info("Done.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
