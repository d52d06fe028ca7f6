# salesledger/__init__.py
from .interchange import ImportRejected
from .ledger import Ledger
from .models import Item, LedgerError
from .storage import SlotStore, StorageError
from .totals import Totals, compute_totals, per_item_profit

__all__ = [
    "ImportRejected",
    "Item",
    "Ledger",
    "LedgerError",
    "SlotStore",
    "StorageError",
    "Totals",
    "compute_totals",
    "per_item_profit",
]
