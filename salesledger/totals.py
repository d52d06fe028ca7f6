# salesledger/totals.py
import math
from dataclasses import dataclass
from typing import Iterable

from .models import Item


@dataclass(frozen=True)
class Totals:
    sold: int | float = 0
    revenue: int | float = 0
    cost: int | float = 0
    fees: int | float = 0
    profit: int | float = 0


def _normalize(value: float) -> int | float:
    if math.isfinite(value) and float(value).is_integer():
        return int(value)
    return value


def _sum(values: Iterable[float]) -> int | float:
    # fsum is exact-rounded, so the result does not depend on item order
    return _normalize(math.fsum(values))


def per_item_profit(item: Item) -> int | float:
    return _normalize((item.price - item.cost - item.amazon_fees) * item.sold)


def total_sold(items: Iterable[Item]) -> int | float:
    return _sum(it.sold for it in items)


def total_revenue(items: Iterable[Item]) -> int | float:
    return _sum(it.price * it.sold for it in items)


def total_cost(items: Iterable[Item]) -> int | float:
    return _sum(it.cost * it.sold for it in items)


def total_fees(items: Iterable[Item]) -> int | float:
    return _sum(it.amazon_fees * it.sold for it in items)


def total_profit(items: Iterable[Item]) -> int | float:
    items = list(items)
    return _normalize(
        total_revenue(items) - total_cost(items) - total_fees(items)
    )


def compute_totals(items: Iterable[Item]) -> Totals:
    """
    All aggregates in one pass over a snapshot of `items`.
    profit is always revenue - cost - fees of the same snapshot.
    """
    items = list(items)
    revenue = total_revenue(items)
    cost = total_cost(items)
    fees = total_fees(items)
    return Totals(
        sold=total_sold(items),
        revenue=revenue,
        cost=cost,
        fees=fees,
        profit=_normalize(revenue - cost - fees),
    )
