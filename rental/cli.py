from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rental.core.currency import fmt_idr, fmt_money
from rental.core.errors import RentalError, ValidationError
from rental.core.settings import Settings, load_settings
from rental.data.db import create_db_and_tables, make_engine, set_engine
from rental.domain.drafts import draft_from_dict
from rental.pdf.invoice_pdf import build_invoice_pdf, invoice_data, invoice_number
from rental.printing.launch import open_file, print_pdf
from rental.reports.monthly import build_monthly_report, export_monthly_report_csv, format_monthly_report
from rental.services import orders as order_service

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rental", description="Rental Mobil order management")
    parser.add_argument("--settings", default=None, help="Path to settings.json (default: next to the project)")
    parser.add_argument("--database", default=None, help="SQLAlchemy database URL (overrides settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("init-db", help="Create the orders and order_items tables")

    orders = top.add_parser("orders", help="Order operations")
    orders_sub = orders.add_subparsers(dest="orders_command", required=True)
    orders_sub.add_parser("list", help="List orders, newest order date first")
    show = orders_sub.add_parser("show", help="Show one order with its items as JSON")
    show.add_argument("order_id")
    create = orders_sub.add_parser("create", help="Create an order from a JSON draft")
    create.add_argument("file", help="JSON file with customer fields, rental dates and items")
    edit = orders_sub.add_parser("edit", help="Replace an order's fields and items from a JSON draft")
    edit.add_argument("order_id")
    edit.add_argument("file")
    delete = orders_sub.add_parser("delete", help="Delete an order and its items")
    delete.add_argument("order_id")

    invoice = top.add_parser("invoice", help="Write the printable invoice PDF of an order")
    invoice.add_argument("order_id")
    invoice.add_argument("-o", "--output", default=None, help="PDF path (default: invoice dir from settings)")
    invoice.add_argument("--open", action="store_true", help="Open the PDF after writing it")
    invoice.add_argument("--print", dest="send_to_printer", action="store_true", help="Send the PDF to the printer (Windows)")

    report = top.add_parser("report", help="Monthly order and revenue report")
    report.add_argument("--year", type=int, default=None, help="Report year (default: current year)")
    report.add_argument("--csv", default=None, help="Also export the report to this CSV file")

    audit = top.add_parser("audit", help="Find orders without items or with a stale total")
    audit.add_argument("--repair", action="store_true", help="Recompute stale totals from items")

    return parser


def _read_draft(path: str):
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValidationError([f"cannot read draft {path}: {exc}"]) from exc
    if not isinstance(raw, dict):
        raise ValidationError([f"draft {path} must contain a JSON object"])
    return draft_from_dict(raw)


def _order_json(found: order_service.OrderWithItems) -> Dict[str, Any]:
    o = found.order
    return {
        "id": o.id,
        "invoice_number": invoice_number(o.id),
        "customer_name": o.customer_name,
        "customer_phone": o.customer_phone,
        "customer_address": o.customer_address,
        "order_date": o.order_date,
        "rental_start_date": o.rental_start_date,
        "rental_end_date": o.rental_end_date,
        "total_amount": fmt_money(o.total_amount),
        "notes": o.notes,
        "order_items": [
            {
                "id": it.id,
                "car_type": it.car_type,
                "quantity": it.quantity,
                "daily_rate": fmt_money(it.daily_rate),
                "days": it.days,
                "subtotal": fmt_money(it.subtotal),
            }
            for it in found.items
        ],
    }


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _list_orders(settings: Settings) -> int:
    rows = order_service.list_orders_with_items()
    if not rows:
        print("Belum ada order")
        return 0
    for found in rows:
        o = found.order
        print(
            f"{invoice_number(o.id)}  {o.order_date.isoformat()}  {o.customer_name:<24}  "
            f"{len(found.items):>2} item  {fmt_idr(o.total_amount, settings.currency_symbol):>16}  {o.id}"
        )
    return 0


def _write_invoice(args: argparse.Namespace, settings: Settings) -> int:
    found = order_service.get_order_with_items(args.order_id)
    if args.output:
        out = Path(args.output)
    else:
        out = settings.resolved_invoice_dir() / f"Invoice {invoice_number(found.id)[1:]} - {found.order.customer_name}.pdf"
    build_invoice_pdf(out, invoice_data(found.order, found.items, settings))
    print(f"Invoice written to: {out}")
    if args.send_to_printer and not print_pdf(str(out)):
        print("Printing is only supported on Windows; open the PDF to print it.", file=sys.stderr)
    if args.open:
        open_file(str(out))
    return 0


def _report(args: argparse.Namespace, settings: Settings) -> int:
    report = build_monthly_report(order_service.list_orders(), year=args.year)
    if report.available_years:
        print("Tahun tersedia: " + ", ".join(str(y) for y in report.available_years))
    print(format_monthly_report(report, symbol=settings.currency_symbol))
    if args.csv:
        export_monthly_report_csv(report, args.csv)
        print(f"CSV written to: {args.csv}")
    return 0


def _audit(args: argparse.Namespace) -> int:
    problems = order_service.audit_orders(repair=args.repair)
    for problem in problems:
        print(str(problem))
    if not problems:
        print("All orders are consistent")
    return 1 if problems and not args.repair else 0


def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "init-db":
        create_db_and_tables()
        print("Tables ready")
        return 0

    if args.command == "orders":
        cmd = args.orders_command
        if cmd == "list":
            return _list_orders(settings)
        if cmd == "show":
            _print_json(_order_json(order_service.get_order_with_items(args.order_id)))
            return 0
        if cmd == "create":
            saved = order_service.create_order(_read_draft(args.file))
            _print_json(_order_json(saved))
            return 0
        if cmd == "edit":
            saved = order_service.update_order(args.order_id, _read_draft(args.file))
            _print_json(_order_json(saved))
            return 0
        if cmd == "delete":
            order_service.delete_order(args.order_id)
            return 0

    if args.command == "invoice":
        return _write_invoice(args, settings)
    if args.command == "report":
        return _report(args, settings)
    if args.command == "audit":
        return _audit(args)
    return 2


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    settings = load_settings(args.settings)
    if args.database or args.settings:
        set_engine(make_engine(args.database or settings.resolved_database_url()))

    def _announce(event: order_service.OrdersChanged) -> None:
        print(f"Order {event.action}: {event.order_id}", file=sys.stderr)

    order_service.order_events.connect(_announce)
    try:
        return _dispatch(args, settings)
    except ValidationError as exc:
        print("Order rejected:", file=sys.stderr)
        for reason in exc.reasons:
            print(f"  - {reason}", file=sys.stderr)
        return 1
    except RentalError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        order_service.order_events.disconnect(_announce)


if __name__ == "__main__":
    raise SystemExit(main())
