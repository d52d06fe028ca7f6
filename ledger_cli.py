import argparse
import json
import math
import os
import sys
from typing import List, Optional

from salesledger.interchange import ImportRejected, export_csv, export_json, format_number
from salesledger.ledger import DEFAULT_SLOT_KEY, Ledger
from salesledger.logger import get_logger
from salesledger.models import NUMERIC_FIELDS, Item, LedgerError
from salesledger.report_html import build_html_report, build_plaintext_report
from salesledger.storage import DB_PATH, SlotStore
from salesledger.totals import per_item_profit

logger = get_logger(__name__)

SLOT_KEY = os.getenv("LEDGER_SLOT_KEY", DEFAULT_SLOT_KEY).strip() or DEFAULT_SLOT_KEY
EXPORT_DIR = os.getenv("LEDGER_EXPORT_DIR", ".")


def non_negative(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{raw}' is not a number")
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"'{raw}' is not a finite number")
    if value < 0:
        raise argparse.ArgumentTypeError(f"'{raw}' must not be negative")
    return value


def unit_count(raw: str) -> int:
    value = non_negative(raw)
    if not value.is_integer():
        raise argparse.ArgumentTypeError(f"'{raw}' must be a whole number of units")
    return int(value)


def item_name(raw: str) -> str:
    if not raw.strip():
        raise argparse.ArgumentTypeError("name must not be empty")
    return raw


def _add_item_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    default = 0 if required else None
    parser.add_argument("--name", type=item_name, required=required)
    parser.add_argument("--price", type=non_negative, default=default, help="selling price per unit")
    parser.add_argument("--cost", type=non_negative, default=default, help="cost per unit")
    parser.add_argument(
        "--fees", "--amazon-fees", dest="amazon_fees", type=non_negative,
        default=default, help="Amazon fees per unit",
    )
    parser.add_argument("--sold", type=unit_count, default=default, help="units sold")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger_cli", description="Track per-item Amazon sales economics."
    )
    parser.add_argument("--db", default=DB_PATH, help=f"SQLite file (default {DB_PATH})")
    parser.add_argument("--slot", default=SLOT_KEY, help="storage slot key")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="list items with per-item profit")
    p.add_argument("--search", default="", help="case-insensitive name filter")

    p = sub.add_parser("show", help="print one item as JSON")
    p.add_argument("item_id")

    p = sub.add_parser("add", help="add a new item")
    _add_item_fields(p, required=True)

    p = sub.add_parser("update", help="replace fields of an existing item")
    p.add_argument("item_id")
    _add_item_fields(p, required=False)

    p = sub.add_parser("remove", help="remove an item")
    p.add_argument("item_id")

    sub.add_parser("totals", help="print ledger totals")

    for name, what in (("export-json", "JSON"), ("export-csv", "CSV")):
        p = sub.add_parser(name, help=f"write the ledger as {what}")
        p.add_argument("--out", default=EXPORT_DIR, help="target directory")

    p = sub.add_parser("import", help="replace the ledger with a JSON file")
    p.add_argument("path")

    p = sub.add_parser("report", help="render a ledger report")
    p.add_argument("--html", action="store_true", help="HTML instead of plain text")
    p.add_argument("--search", default="", help="only list matching items")
    p.add_argument("--out", help="write to this file instead of stdout")

    return parser


def _item_line(item: Item) -> str:
    return "\t".join(
        [
            item.id,
            item.name,
            format_number(item.price),
            format_number(item.cost),
            format_number(item.amazon_fees),
            format_number(item.sold),
            format_number(per_item_profit(item)),
        ]
    )


def cmd_list(ledger: Ledger, args) -> int:
    print("\t".join(["id", "name", "price", "cost", "amazonFees", "sold", "profit"]))
    for item in ledger.filter(args.search):
        print(_item_line(item))
    return 0


def cmd_show(ledger: Ledger, args) -> int:
    item = ledger.get(args.item_id)
    if item is None:
        print(f"No item with id {args.item_id}", file=sys.stderr)
        return 1
    print(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_add(ledger: Ledger, args) -> int:
    draft = {"name": args.name}
    for wire, attr in NUMERIC_FIELDS.items():
        draft[wire] = getattr(args, attr)
    item = ledger.add(draft)
    print(item.id)
    return 0


def cmd_update(ledger: Ledger, args) -> int:
    existing = ledger.get(args.item_id)
    if existing is None:
        print(f"No item with id {args.item_id}", file=sys.stderr)
        return 1

    draft = existing.to_dict()
    if args.name is not None:
        draft["name"] = args.name
    for wire, attr in NUMERIC_FIELDS.items():
        value = getattr(args, attr)
        if value is not None:
            draft[wire] = value
    ledger.update(draft)
    return 0


def cmd_remove(ledger: Ledger, args) -> int:
    if not ledger.remove(args.item_id):
        logger.info("Nothing to remove for id %s.", args.item_id)
    return 0


def cmd_totals(ledger: Ledger, args) -> int:
    totals = ledger.totals()
    print(f"sold\t{format_number(totals.sold)}")
    print(f"revenue\t{format_number(totals.revenue)}")
    print(f"cost\t{format_number(totals.cost)}")
    print(f"fees\t{format_number(totals.fees)}")
    print(f"profit\t{format_number(totals.profit)}")
    return 0


def cmd_export_json(ledger: Ledger, args) -> int:
    print(export_json(ledger.items, args.out))
    return 0


def cmd_export_csv(ledger: Ledger, args) -> int:
    print(export_csv(ledger.items, args.out))
    return 0


def cmd_import(ledger: Ledger, args) -> int:
    items = ledger.import_file(args.path)
    print(f"Imported {len(items)} items")
    return 0


def cmd_report(ledger: Ledger, args) -> int:
    last_saved = ledger.store.updated_at(ledger.slot_key) if ledger.store else None
    build = build_html_report if args.html else build_plaintext_report
    body = build(ledger.items, search=args.search, last_saved=last_saved)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(body)
        logger.info("Report written to %s", args.out)
    else:
        sys.stdout.write(body)
    return 0


COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "add": cmd_add,
    "update": cmd_update,
    "remove": cmd_remove,
    "totals": cmd_totals,
    "export-json": cmd_export_json,
    "export-csv": cmd_export_csv,
    "import": cmd_import,
    "report": cmd_report,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        ledger = Ledger.open(SlotStore(args.db), slot_key=args.slot)
        return COMMANDS[args.command](ledger, args)
    except ImportRejected as e:
        print(str(e), file=sys.stderr)
        return 1
    except (LedgerError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal ledger error: %s", e)
        raise SystemExit(2)
