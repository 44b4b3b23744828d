"""Cart manager: owns the line items of the open transaction."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog

from .catalog import ProductCatalog
from .errors import DuplicateNotMerged, InvalidLineItem, LineNotFound, ProductNotFound, errmsg
from .models import DiscountSelection, LineItem, Product, Transaction, TransactionStatus
from .validation import is_whole_number

logger = structlog.get_logger(__name__)


class CartState(str, Enum):
    EMPTY = "empty"
    OPEN = "open"


class CartManager:
    """Line items, discount and customer fields of one transaction.

    Each scan adds a new line, even for an item code already in the cart;
    returns are processed per line, so lines are never merged. Totals are
    not cached: every snapshot() computes them from the current lines.

    Not thread-safe; a cart belongs to one cashier session.
    """

    def __init__(self, transaction_id: str = "", catalog: Optional[ProductCatalog] = None):
        self.transaction_id = transaction_id
        self.catalog = catalog
        self._lines: list[LineItem] = []
        self._discount = DiscountSelection.none()
        self._customer_id: Optional[str] = None
        self._customer_name: Optional[str] = None
        self._star_points_id: Optional[str] = None
        self.log = logger.bind(component="cart")

    @property
    def state(self) -> CartState:
        return CartState.OPEN if self._lines else CartState.EMPTY

    @property
    def lines(self) -> tuple[LineItem, ...]:
        return tuple(self._lines)

    @property
    def discount(self) -> DiscountSelection:
        return self._discount

    def add_item(self, product: Product, merge: bool = False) -> LineItem:
        """Append a new line with quantity 1.

        Args:
            product: Catalog product being scanned.
            merge: Set when the caller expects repeated scans to merge; a
                repeated item code is then rejected instead of merged.

        Raises:
            DuplicateNotMerged: ``merge`` is set and the item code is already in the cart.
        """
        if merge and any(line.item_code == product.item_code for line in self._lines):
            self.log.warning("duplicate_not_merged", item_code=product.item_code)
            raise DuplicateNotMerged(product.item_code)

        line = LineItem.from_product(uuid.uuid4().hex[:12], product)
        self._lines.append(line)
        self.log.info(
            "item_added",
            transaction_id=self.transaction_id,
            line_id=line.id,
            item_code=line.item_code,
        )
        return line

    def add_by_code(self, item_code: str, merge: bool = False) -> LineItem:
        if self.catalog is None:
            raise ProductNotFound(item_code)
        return self.add_item(self.catalog.get_product(item_code), merge=merge)

    def remove_item(self, line_id: str) -> LineItem:
        index = self._index_of(line_id)
        line = self._lines.pop(index)
        self.log.info("item_removed", transaction_id=self.transaction_id, line_id=line_id)
        return line

    def set_quantity(self, line_id: str, quantity: int) -> Optional[LineItem]:
        """Change a line's quantity; below 1 removes the line and returns None.

        Raises:
            InvalidLineItem: ``quantity`` is not a whole number.
        """
        index = self._index_of(line_id)
        if not is_whole_number(quantity):
            self.log.warning("invalid_quantity", transaction_id=self.transaction_id, line_id=line_id)
            raise InvalidLineItem(errmsg.INVALID_QUANTITY, line_id)
        if quantity < 1:
            self.remove_item(line_id)
            return None

        updated = replace(self._lines[index], quantity=quantity)
        self._lines[index] = updated
        self.log.info(
            "quantity_updated",
            transaction_id=self.transaction_id,
            line_id=line_id,
            quantity=updated.quantity,
        )
        return updated

    def set_discount(self, selection: DiscountSelection) -> None:
        self._discount = selection
        self.log.info(
            "discount_selected",
            transaction_id=self.transaction_id,
            kind=selection.kind.value,
            percent=str(selection.percent) if selection.percent is not None else None,
        )

    def set_customer(
        self,
        customer_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        star_points_id: Optional[str] = None,
    ) -> None:
        self._customer_id = customer_id
        self._customer_name = customer_name
        self._star_points_id = star_points_id

    def clear(self) -> None:
        self._lines.clear()
        self._discount = DiscountSelection.none()
        self.set_customer()
        self.log.info("cart_cleared", transaction_id=self.transaction_id)

    def restore(self, transaction: Transaction) -> None:
        """Load a recalled transaction's lines, discount and customer fields."""
        self.transaction_id = transaction.id
        self._lines = list(transaction.line_items)
        self._discount = transaction.discount
        self.set_customer(
            transaction.customer_id,
            transaction.customer_name,
            transaction.star_points_id,
        )
        self.log.info("cart_restored", transaction_id=transaction.id, lines=len(self._lines))

    def snapshot(self, timestamp: Optional[datetime] = None) -> Transaction:
        return Transaction(
            id=self.transaction_id,
            line_items=tuple(self._lines),
            discount=self._discount,
            customer_id=self._customer_id,
            customer_name=self._customer_name,
            star_points_id=self._star_points_id,
            timestamp=timestamp,
            status=TransactionStatus.OPEN,
        )

    def _index_of(self, line_id: str) -> int:
        for index, line in enumerate(self._lines):
            if line.id == line_id:
                return index
        raise LineNotFound(line_id)
