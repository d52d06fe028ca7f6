# salesledger/ledger.py
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from .interchange import ImportRejected, parse_items, read_import_file, serialize_items
from .logger import get_logger
from .models import Item, filter_items, new_item_id
from .storage import SlotStore, StorageError
from .totals import Totals, compute_totals

logger = get_logger(__name__)

DEFAULT_SLOT_KEY = "amazon-items"

Draft = Union[Item, Mapping[str, Any]]
Listener = Callable[["Ledger"], None]


def _as_item(draft: Draft, id_factory: Callable[[], str]) -> Item:
    if isinstance(draft, Item):
        item = draft.sanitized()
        if not item.id:
            item.id = id_factory()
        return item
    return Item.from_dict(draft, id_factory=id_factory)


class Ledger:
    """
    Ordered collection of Items, unique by id.

    Mutations write the whole collection back to the durable slot when a
    store is attached. If that write fails the in-memory collection is
    restored and the StorageError propagates, so a mutation either lands
    completely or not at all.
    """

    def __init__(
        self,
        store: Optional[SlotStore] = None,
        slot_key: str = DEFAULT_SLOT_KEY,
        id_factory: Callable[[], str] = new_item_id,
    ):
        self.store = store
        self.slot_key = slot_key
        self._new_id = id_factory
        self._items: List[Item] = []
        self._listeners: List[Listener] = []

    @classmethod
    def open(cls, store: SlotStore, slot_key: str = DEFAULT_SLOT_KEY, **kwargs) -> "Ledger":
        ledger = cls(store=store, slot_key=slot_key, **kwargs)
        ledger.load()
        return ledger

    # ---- read side -------------------------------------------------

    @property
    def items(self) -> Tuple[Item, ...]:
        return tuple(it.sanitized() for it in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.items)

    def get(self, item_id: str) -> Optional[Item]:
        for it in self._items:
            if it.id == item_id:
                return it.sanitized()
        return None

    def filter(self, query: Optional[str]) -> Tuple[Item, ...]:
        return tuple(it.sanitized() for it in filter_items(self._items, query))

    def totals(self) -> Totals:
        return compute_totals(self._items)

    # ---- mutations -------------------------------------------------

    def add(self, draft: Draft) -> Item:
        item = _as_item(draft, lambda: "")
        item.id = self._new_id()
        self._commit(self._items + [item])
        logger.info("Added item %s (%s).", item.id, item.name)
        return item.sanitized()

    def update(self, item: Draft) -> bool:
        """
        Replace the entry with the same id wholesale.
        Returns False and changes nothing when no entry has that id.
        """
        replacement = _as_item(item, lambda: "")
        if not replacement.id:
            logger.debug("Update without an id ignored.")
            return False

        updated = [replacement if it.id == replacement.id else it for it in self._items]
        if not any(it is replacement for it in updated):
            logger.debug("Update for unknown id %s ignored.", replacement.id)
            return False

        self._commit(updated)
        logger.info("Updated item %s.", replacement.id)
        return True

    def add_or_update(self, draft: Draft) -> Optional[Item]:
        """
        Save a form draft: update when it carries an id, add otherwise.
        Returns the stored item, or None when the id matched nothing.
        """
        item = _as_item(draft, lambda: "")
        if item.id:
            self.update(item)
            return self.get(item.id)
        return self.add(item)

    def remove(self, item_id: str) -> bool:
        kept = [it for it in self._items if it.id != item_id]
        if len(kept) == len(self._items):
            logger.debug("Remove for unknown id %s ignored.", item_id)
            return False
        self._commit(kept)
        logger.info("Removed item %s.", item_id)
        return True

    def replace_all(self, items: Iterable[Draft]) -> Tuple[Item, ...]:
        adopted = self._unique([_as_item(draft, self._new_id) for draft in items])
        self._commit(adopted)
        logger.info("Replaced ledger with %d items.", len(adopted))
        return self.items

    # ---- import ----------------------------------------------------

    def import_json(self, text: str) -> Tuple[Item, ...]:
        """
        Parse `text` and adopt it wholesale. On ImportRejected the
        ledger is left untouched.
        """
        return self.replace_all(parse_items(text, id_factory=self._new_id))

    def import_file(self, path) -> Tuple[Item, ...]:
        items = read_import_file(path, id_factory=self._new_id)
        logger.info("Importing %d items from %s", len(items), path)
        return self.replace_all(items)

    # ---- observers -------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener(ledger)` after every successful mutation.
        Returns a function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- persistence -----------------------------------------------

    def load(self) -> None:
        """
        Replace the in-memory collection with the durable slot's contents.
        A missing slot gives an empty ledger, as does unreadable content.
        """
        self._items = []
        if self.store is None:
            return

        raw = self.store.read(self.slot_key)
        if raw is None:
            logger.debug("Slot '%s' is empty; starting with no items.", self.slot_key)
            return

        assigned: List[str] = []

        def mint() -> str:
            fresh = self._new_id()
            assigned.append(fresh)
            return fresh

        try:
            items = parse_items(raw, id_factory=mint)
        except ImportRejected as e:
            logger.warning("Failed to parse saved items in slot '%s': %s", self.slot_key, e)
            return

        self._items = self._unique(items, id_factory=mint)
        logger.info("Loaded %d items from slot '%s'.", len(items), self.slot_key)

        # Ids minted here must survive to the next open
        if assigned:
            logger.info("Assigned %d missing ids; saving slot '%s'.", len(assigned), self.slot_key)
            try:
                self.save()
            except StorageError as e:
                logger.warning("Could not save assigned ids to slot '%s': %s", self.slot_key, e)

    def save(self) -> None:
        if self.store is None:
            return
        self.store.write(self.slot_key, serialize_items(self._items))

    def _unique(
        self, items: List[Item], id_factory: Optional[Callable[[], str]] = None
    ) -> List[Item]:
        """Give every repeated id after its first occurrence a fresh one."""
        new_id = id_factory or self._new_id
        seen = set()
        for item in items:
            if item.id in seen:
                fresh = new_id()
                logger.warning("Duplicate id %s; assigned %s.", item.id, fresh)
                item.id = fresh
            seen.add(item.id)
        return items

    def _commit(self, items: List[Item]) -> None:
        previous = self._items
        self._items = items
        try:
            self.save()
        except Exception:
            self._items = previous
            raise
        for listener in list(self._listeners):
            listener(self)
