import os

import pytest

# Keep log output inside pytest's capture instead of a stderr handler
os.environ.setdefault("LOG_TO_STDERR", "false")
os.environ.setdefault("LOG_TO_FILE", "false")

from salesledger.models import Item  # noqa: E402
from salesledger.storage import SlotStore  # noqa: E402


class MemoryStore:
    """Dict-backed stand-in for SlotStore that records every write."""

    def __init__(self, initial=None):
        self.slots = dict(initial or {})
        self.writes = []

    def read(self, key):
        return self.slots.get(key)

    def write(self, key, value):
        self.writes.append((key, value))
        self.slots[key] = value


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def slot_store(tmp_path):
    return SlotStore(str(tmp_path / "ledger.sqlite3"))


@pytest.fixture
def scenario_items():
    return [
        Item(id="a", name="Widget", price=10, cost=4, amazon_fees=1, sold=3),
        Item(id="b", name="Gadget", price=20, cost=10, amazon_fees=2, sold=1),
    ]
