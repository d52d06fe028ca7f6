# salesledger/models.py
import math
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase

# Wire name -> attribute name for the four numeric fields
NUMERIC_FIELDS = {
    "price": "price",
    "cost": "cost",
    "amazonFees": "amazon_fees",
    "sold": "sold",
}


class LedgerError(Exception):
    """Base error for the sales ledger."""


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ID_ALPHABET[rem])
    return "".join(reversed(digits))


def new_item_id() -> str:
    """Millisecond timestamp in base 36 followed by 5 random base-36 chars."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_ID_ALPHABET, k=5))
    return stamp + suffix


def to_number(value: Any) -> int | float:
    """
    Coerce an arbitrary input to a finite, non-negative number.
    Anything that cannot be read as one becomes 0. Integral values
    come back as int so they serialize as `10`, not `10.0`.
    """
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    if number.is_integer():
        return int(number)
    return number


@dataclass
class Item:
    """
    One product's sales economics. Money fields are per single unit,
    in whatever currency the user works in.
    """
    id: str
    name: str
    price: int | float = 0
    cost: int | float = 0
    amazon_fees: int | float = 0
    sold: int | float = 0

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        id_factory: Callable[[], str] = new_item_id,
    ) -> "Item":
        """
        Build a sanitized Item from its wire form. Accepts either the
        camelCase key `amazonFees` or the attribute name `amazon_fees`.
        A missing or empty id is generated.
        """
        raw_id = data.get("id")
        item_id = str(raw_id) if raw_id not in (None, "") else id_factory()
        raw_name = data.get("name")
        fees = data.get("amazonFees", data.get("amazon_fees"))
        return cls(
            id=item_id,
            name=str(raw_name) if raw_name is not None else "",
            price=to_number(data.get("price")),
            cost=to_number(data.get("cost")),
            amazon_fees=to_number(fees),
            sold=to_number(data.get("sold")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "cost": self.cost,
            "amazonFees": self.amazon_fees,
            "sold": self.sold,
        }

    def sanitized(self) -> "Item":
        """Return a fresh copy with every numeric field coerced."""
        return Item(
            id=self.id,
            name=str(self.name) if self.name is not None else "",
            price=to_number(self.price),
            cost=to_number(self.cost),
            amazon_fees=to_number(self.amazon_fees),
            sold=to_number(self.sold),
        )


def filter_items(items: Iterable[Item], query: Optional[str]) -> List[Item]:
    """Items whose name contains `query`, trimmed and case-insensitive."""
    q = (query or "").strip().lower()
    if not q:
        return list(items)
    return [it for it in items if q in it.name.lower()]
