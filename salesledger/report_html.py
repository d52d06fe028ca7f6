import datetime
import os
from pathlib import Path
from typing import Iterable, List, Optional

import pytz
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .interchange import format_number
from .models import Item, filter_items
from .totals import compute_totals, per_item_profit

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

REPORT_THEME = os.getenv("REPORT_THEME", "dark").strip().lower()
if REPORT_THEME not in ("light", "dark"):
    REPORT_THEME = "dark"

THEMES = {
    "light": {
        "page_bg": "#f5f5f5",
        "card_bg": "#ffffff",
        "card_border": "#e0e0e0",
        "text_primary": "#202124",
        "text_secondary": "#555",
        "text_muted": "#999",
        "profit_positive": "#2e7d32",
        "profit_negative": "#c62828",
    },
    "dark": {
        "page_bg": "#121212",
        "card_bg": "#1E1E1E",
        "card_border": "#333333",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "text_muted": "#777777",
        "profit_positive": "#4CAF50",
        "profit_negative": "#FF6B6B",
    },
}


def _generated_at() -> str:
    return datetime.datetime.now(tz=pytz.UTC).strftime("%Y-%m-%d %H:%M UTC")


def _row_data(items: List[Item]) -> list[dict]:
    rows = []
    for it in items:
        profit = per_item_profit(it)
        rows.append(
            {
                "name": it.name,
                "price": format_number(it.price),
                "cost": format_number(it.cost),
                "amazon_fees": format_number(it.amazon_fees),
                "sold": format_number(it.sold),
                "profit": format_number(profit),
                "loss": profit < 0,
            }
        )
    return rows


def _totals_data(items: List[Item]) -> dict:
    totals = compute_totals(items)
    return {
        "sold": format_number(totals.sold),
        "revenue": format_number(totals.revenue),
        "cost": format_number(totals.cost),
        "fees": format_number(totals.fees),
        "profit": format_number(totals.profit),
        "loss": totals.profit < 0,
    }


def _summary_text(shown: int, total: int, search: str) -> str:
    if search and search.strip():
        return f"{shown} of {total} items match '{search.strip()}'"
    return f"{total} items"


def build_plaintext_report(
    items: Iterable[Item],
    search: str = "",
    last_saved: Optional[str] = None,
) -> str:
    template = env.get_template("report.txt")
    all_items = list(items)
    shown = filter_items(all_items, search)

    ctx = {
        "generated_at": _generated_at(),
        "last_saved": last_saved,
        "summary_text": _summary_text(len(shown), len(all_items), search),
        "rows": _row_data(shown),
        "totals": _totals_data(all_items),
    }
    return template.render(**ctx)


def build_html_report(
    items: Iterable[Item],
    search: str = "",
    last_saved: Optional[str] = None,
) -> str:
    template = env.get_template("report.html")
    colors = THEMES[REPORT_THEME]
    all_items = list(items)
    shown = filter_items(all_items, search)

    ctx = {
        "title": "Amazon sales ledger",
        "generated_at": _generated_at(),
        "last_saved": last_saved,
        "summary_text": _summary_text(len(shown), len(all_items), search),
        "rows": _row_data(shown),
        "totals": _totals_data(all_items),
        "colors": colors,
    }
    return template.render(**ctx)
