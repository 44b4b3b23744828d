"""Terminal session: the cashier-facing transaction lifecycle.

A session always has exactly one open transaction. It moves to HELD through
the hold registry, or to COMPLETED / VOIDED when it is written to the sale
store; either way a fresh transaction is opened in its place.
"""

from __future__ import annotations

from typing import Optional

import structlog

from .cart import CartManager
from .catalog import IdentityProvider, ProductCatalog
from .errors import EmptyTransaction, TransactionInProgress
from .holds import HoldRegistry
from .ids import Clock, TransactionIdGenerator, utc_now
from .models import (
    DiscountSelection,
    LineItem,
    PaymentMethod,
    SaleTransaction,
    Transaction,
    TransactionStatus,
)
from .pricing import star_points_earned
from .stores import Store

logger = structlog.get_logger(__name__)


class TerminalSession:
    """One cashier's session on one terminal.

    Args:
        registry: Terminal-wide hold registry, shared between sessions.
        sales: Store that completed and voided sales are appended to.
        id_generator: Branch-date-sequence transaction ids.
        identity: Supplies ``processed_by`` at checkout.
        catalog: Product lookup for ``add_by_code``.
        clock: Source of sale timestamps.
        star_points_divisor: Pesos per loyalty star point.
        terminal_id: Bound into log context.
    """

    def __init__(
        self,
        registry: HoldRegistry,
        sales: Store[SaleTransaction],
        id_generator: TransactionIdGenerator,
        identity: IdentityProvider,
        catalog: Optional[ProductCatalog] = None,
        clock: Clock = utc_now,
        star_points_divisor: int = 200,
        terminal_id: str = "T01",
    ):
        self.registry = registry
        self._sales = sales
        self._ids = id_generator
        self._identity = identity
        self._clock = clock
        self.star_points_divisor = star_points_divisor
        self.terminal_id = terminal_id
        self.cart = CartManager(catalog=catalog)
        self.log = logger.bind(
            component="terminal",
            terminal_id=terminal_id,
            branch_id=id_generator.branch_id,
        )

    @property
    def transaction_id(self) -> str:
        return self.cart.transaction_id

    @property
    def current(self) -> Transaction:
        return self.cart.snapshot()

    def start(self) -> str:
        """Open a new, empty transaction and return its id."""
        self.cart.clear()
        self.cart.transaction_id = self._ids.next_id()
        self.log.info("transaction_started", transaction_id=self.cart.transaction_id)
        return self.cart.transaction_id

    def new_transaction(self) -> str:
        """Discard the open cart without recording it."""
        if self.cart.lines:
            self.log.info(
                "transaction_discarded",
                transaction_id=self.transaction_id,
                lines=len(self.cart.lines),
            )
        return self.start()

    def add_item(self, item_code: str) -> LineItem:
        self._ensure_started()
        return self.cart.add_by_code(item_code)

    def set_discount(self, selection: DiscountSelection) -> None:
        self.cart.set_discount(selection)

    def hold(self, note: Optional[str] = None) -> str:
        """Suspend the open transaction and start a new one.

        Raises:
            EmptyTransaction: The cart has no lines.
        """
        held_id = self.registry.hold(self.cart.snapshot(self._clock()), note)
        self.start()
        return held_id

    def recall(self, held_id: str, discard_current: bool = False) -> Transaction:
        """Resume a held transaction in this session.

        Raises:
            TransactionInProgress: The open cart has lines and ``discard_current`` is not set.
            HeldTransactionNotFound: No such held transaction.
            AlreadyRecalled: Another session recalled it first.
        """
        if self.cart.lines and not discard_current:
            self.log.warning("recall_blocked", transaction_id=self.transaction_id, held_id=held_id)
            raise TransactionInProgress(self.transaction_id)

        held = self.registry.recall(held_id)
        self.cart.restore(held.transaction)
        self.log.info("transaction_resumed", transaction_id=self.transaction_id, held_id=held_id)
        return self.cart.snapshot()

    def checkout(
        self,
        payment_method: PaymentMethod,
        prescription_id: Optional[str] = None,
    ) -> SaleTransaction:
        """Finalize the open transaction as a completed sale.

        Raises:
            EmptyTransaction: The cart has no lines.
        """
        sale = self._finalize(TransactionStatus.COMPLETED, PaymentMethod(payment_method), prescription_id)
        self.log.info(
            "transaction_completed",
            transaction_id=sale.id,
            total_amount=str(sale.total_amount),
            payment_method=sale.payment_method.value,
            star_points_earned=sale.star_points_earned,
        )
        self.start()
        return sale

    def void(self) -> Optional[SaleTransaction]:
        """Cancel the open transaction; a non-empty cart is recorded as VOIDED."""
        if not self.cart.lines:
            self.start()
            return None

        sale = self._finalize(TransactionStatus.VOIDED, None, None)
        self.log.info("transaction_voided", transaction_id=sale.id, total_amount=str(sale.total_amount))
        self.start()
        return sale

    def _finalize(
        self,
        status: TransactionStatus,
        payment_method: Optional[PaymentMethod],
        prescription_id: Optional[str],
    ) -> SaleTransaction:
        snapshot = self.cart.snapshot()
        if snapshot.is_empty:
            self.log.warning("checkout_rejected_empty", transaction_id=snapshot.id)
            raise EmptyTransaction()

        total = snapshot.totals.total
        completed = status == TransactionStatus.COMPLETED
        sale = SaleTransaction(
            id=snapshot.id,
            line_items=snapshot.line_items,
            total_amount=total,
            timestamp=self._clock(),
            processed_by=self._identity.current_user_id(),
            payment_method=payment_method,
            status=status,
            discount=snapshot.discount,
            customer_id=snapshot.customer_id,
            customer_name=snapshot.customer_name,
            star_points_id=snapshot.star_points_id,
            star_points_earned=star_points_earned(total, self.star_points_divisor) if completed else 0,
            prescription_id=prescription_id,
        )
        self._sales.append(sale)
        return sale

    def _ensure_started(self) -> None:
        if not self.cart.transaction_id:
            self.start()
