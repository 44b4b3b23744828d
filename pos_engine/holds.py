"""Hold/recall registry for suspended transactions.

A held transaction is a frozen deep copy of the cart snapshot, so later cart
changes cannot reach it. Recall is destructive: a held transaction resumes in
exactly one session. hold, recall and delete are serialized by the registry.
"""

from __future__ import annotations

import copy
import threading
from collections import OrderedDict
from dataclasses import replace
from typing import Optional

import structlog

from .errors import AlreadyRecalled, EmptyTransaction, HeldTransactionNotFound
from .ids import Clock, TimestampIdGenerator, utc_now
from .models import HeldTransaction, Transaction, TransactionStatus
from .stores import InMemoryStore, MutableStore

logger = structlog.get_logger(__name__)

# recalled ids remembered for telling a lost recall race from an unknown id
RECALLED_HISTORY = 1024


class HoldRegistry:
    """Terminal-wide set of held transactions.

    Args:
        store: Backing store for held transactions.
        id_generator: Generates ``HELD-...`` ids.
        clock: Source of held timestamps.
        recalled_history: How many recalled ids are remembered, newest
            first, to report a lost race as AlreadyRecalled.
    """

    def __init__(
        self,
        store: Optional[MutableStore[HeldTransaction]] = None,
        id_generator: Optional[TimestampIdGenerator] = None,
        clock: Clock = utc_now,
        recalled_history: int = RECALLED_HISTORY,
    ):
        self._store = store if store is not None else InMemoryStore("held")
        self._ids = id_generator or TimestampIdGenerator("HELD", clock)
        self._clock = clock
        self._lock = threading.Lock()
        self._order: dict[str, int] = {}
        self._next_order = 0
        self._recalled: OrderedDict[str, None] = OrderedDict()
        self._recalled_history = recalled_history
        self.log = logger.bind(component="hold_registry")

    def hold(self, snapshot: Transaction, note: Optional[str] = None) -> str:
        """Suspend a transaction and return its held id.

        Raises:
            EmptyTransaction: The snapshot has no line items.
        """
        if snapshot.is_empty:
            self.log.warning("hold_rejected_empty", transaction_id=snapshot.id)
            raise EmptyTransaction()

        frozen = replace(copy.deepcopy(snapshot), status=TransactionStatus.HELD)
        with self._lock:
            held = HeldTransaction(
                id=self._ids.next_id(),
                transaction=frozen,
                held_at=self._clock(),
                note=note or None,
            )
            self._store.append(held)
            self._recalled.pop(held.id, None)
            self._order[held.id] = self._next_order
            self._next_order += 1

        self.log.info(
            "transaction_held",
            held_id=held.id,
            transaction_id=snapshot.id,
            lines=len(frozen.line_items),
        )
        return held.id

    def recall(self, held_id: str) -> HeldTransaction:
        """Remove and return a held transaction.

        Raises:
            AlreadyRecalled: Another session recalled it first.
            HeldTransactionNotFound: No such held transaction.
        """
        with self._lock:
            held = self._store.remove(held_id)
            if held is None:
                lost_race = held_id in self._recalled
            else:
                self._order.pop(held_id, None)
                self._recalled[held_id] = None
                while len(self._recalled) > self._recalled_history:
                    self._recalled.popitem(last=False)

        if held is None:
            self.log.warning("recall_failed", held_id=held_id, already_recalled=lost_race)
            if lost_race:
                raise AlreadyRecalled(held_id)
            raise HeldTransactionNotFound(held_id)

        self.log.info("transaction_recalled", held_id=held_id, transaction_id=held.transaction.id)
        return held

    def delete(self, held_id: str) -> None:
        """Discard a held transaction; absent ids are ignored."""
        with self._lock:
            removed = self._store.remove(held_id)
            self._order.pop(held_id, None)
        if removed is not None:
            self.log.info("held_transaction_deleted", held_id=held_id)

    def list(self) -> list[HeldTransaction]:
        """Held transactions, oldest first."""
        with self._lock:
            order = dict(self._order)
        records = self._store.list()
        return sorted(records, key=lambda h: (h.held_at, order.get(h.id, 0)))

    def get(self, held_id: str) -> Optional[HeldTransaction]:
        return self._store.find(held_id)

    def __len__(self) -> int:
        return len(self._store.list())
