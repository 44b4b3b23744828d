"""Return processing against a completed sale.

A return attempt moves RECEIPT_LOOKUP -> ITEM_SELECTION -> VALIDATED ->
RECORDED. Recording appends one ReturnTransaction to the return store; the
original sale is never modified, returns are netted at report time.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

import structlog

from .catalog import IdentityProvider
from .errors import (
    InvalidReceiptId,
    InvalidStage,
    LineNotOnReceipt,
    MissingReason,
    NoItemsSelected,
    OverReturn,
    ReceiptNotFound,
)
from .ids import Clock, MillisecondIdGenerator, utc_now
from .models import (
    LineItem,
    ReturnedLine,
    ReturnRequestLine,
    ReturnTransaction,
    SaleTransaction,
)
from .stores import Store
from .validation import require_in_range, require_not_blank, require_whole_number

logger = structlog.get_logger(__name__)

SelectedLines = Union[Mapping[str, int], Iterable[ReturnRequestLine]]


class ReturnStage(str, Enum):
    RECEIPT_LOOKUP = "receipt_lookup"
    ITEM_SELECTION = "item_selection"
    VALIDATED = "validated"
    RECORDED = "recorded"


def _requested_quantities(selected_lines: SelectedLines) -> list[tuple[str, int]]:
    if isinstance(selected_lines, Mapping):
        return list(selected_lines.items())
    return [(line.line_id, line.return_quantity) for line in selected_lines]


class ReturnProcessor:
    """Validates and records returns.

    Args:
        sales: Store of finalized sales, searched by receipt id.
        returns: Store the recorded returns are appended to.
        identity: Supplies ``processed_by`` when the caller does not.
        id_generator: Generates ``RET...`` ids.
        clock: Source of return timestamps.
        lock: Guards the correlation-token check and the append. Processors
            writing to the same return store must share one lock.
    """

    def __init__(
        self,
        sales: Store[SaleTransaction],
        returns: Store[ReturnTransaction],
        identity: Optional[IdentityProvider] = None,
        id_generator: Optional[MillisecondIdGenerator] = None,
        clock: Clock = utc_now,
        lock: Optional[threading.Lock] = None,
    ):
        self._sales = sales
        self._returns = returns
        self._identity = identity
        self._ids = id_generator or MillisecondIdGenerator("RET", clock)
        self._clock = clock
        self._lock = lock or threading.Lock()
        self.log = logger.bind(component="return_processor")

    def lookup_receipt(self, receipt_id: str) -> tuple[LineItem, ...]:
        """Return the line items of a completed sale.

        Raises:
            InvalidReceiptId: The id is empty or blank.
            ReceiptNotFound: No completed sale carries this id.
        """
        return self._find_sale(receipt_id).line_items

    def validate_return(
        self,
        receipt_id: str,
        selected_lines: SelectedLines,
        reason: str,
    ) -> tuple[ReturnedLine, ...]:
        """Check a return request against the receipt.

        Lines requested with quantity 0 are not part of the return. A line id
        requested more than once is checked against its summed quantity.

        Raises:
            OverReturn: A requested quantity is not a whole number, or the
                total for a line is outside [1, purchased].
            LineNotOnReceipt: A requested line id is not on the receipt.
            NoItemsSelected: Every requested quantity is 0.
            MissingReason: ``reason`` is blank.
        """
        sale = self._find_sale(receipt_id)
        purchased = {line.id: line for line in sale.line_items}

        requested: dict[str, int] = {}
        try:
            for line_id, quantity in _requested_quantities(selected_lines):
                if quantity == 0:
                    continue
                line = purchased.get(line_id)
                if line is None:
                    self.log.warning("line_not_on_receipt", receipt_id=receipt_id, line_id=line_id)
                    raise LineNotOnReceipt(receipt_id, line_id)
                require_whole_number(quantity, 1, OverReturn(line_id, quantity, line.quantity))
                requested[line_id] = requested.get(line_id, 0) + quantity
            for line_id, quantity in requested.items():
                purchased_quantity = purchased[line_id].quantity
                require_in_range(quantity, 1, purchased_quantity, OverReturn(line_id, quantity, purchased_quantity))
        except OverReturn as e:
            self.log.warning(
                "over_return",
                receipt_id=receipt_id,
                line_id=e.line_id,
                requested=e.requested,
                purchased=e.purchased,
            )
            raise

        returned = [
            ReturnedLine(
                line_id=line.id,
                item_code=line.item_code,
                product_name=line.product_name,
                unit_price=line.unit_price,
                purchased_quantity=line.quantity,
                return_quantity=requested[line.id],
                category=line.category,
            )
            for line in sale.line_items
            if line.id in requested
        ]

        if not returned:
            raise NoItemsSelected()
        require_not_blank(reason, MissingReason())
        return tuple(returned)

    def process(
        self,
        receipt_id: str,
        selected_lines: SelectedLines,
        reason: str,
        processed_by: Optional[str] = None,
        correlation_token: Optional[str] = None,
    ) -> ReturnTransaction:
        """Validate and record a return.

        A retry carrying the same ``correlation_token`` returns the return
        recorded by the first call instead of recording another. Without a
        token, identical requests are recorded separately.
        """
        if correlation_token:
            existing = self._by_token(correlation_token)
            if existing is not None:
                self.log.info(
                    "return_replayed",
                    return_id=existing.id,
                    correlation_token=correlation_token,
                )
                return existing

        returned_lines = self.validate_return(receipt_id, selected_lines, reason)
        total = sum((line.amount for line in returned_lines), Decimal(0))

        with self._lock:
            existing = self._find_by_token(correlation_token) if correlation_token else None
            if existing is not None:
                return existing
            record = ReturnTransaction(
                id=self._ids.next_id(),
                receipt_id=receipt_id.strip(),
                returned_lines=returned_lines,
                reason=reason.strip(),
                total_amount=total,
                timestamp=self._clock(),
                processed_by=processed_by or self._current_user(),
                correlation_token=correlation_token,
            )
            self._returns.append(record)

        self.log.info(
            "return_recorded",
            return_id=record.id,
            receipt_id=receipt_id,
            lines=len(returned_lines),
            total_amount=str(total),
        )
        return record

    def begin(self, receipt_id: str) -> ReturnAttempt:
        """Start a step-by-step return attempt for a receipt."""
        return ReturnAttempt(self, receipt_id)

    def list_returns(self) -> tuple[ReturnTransaction, ...]:
        return self._returns.list()

    def get_return(self, return_id: str) -> Optional[ReturnTransaction]:
        return self._returns.find(return_id)

    def _find_sale(self, receipt_id: str) -> SaleTransaction:
        require_not_blank(receipt_id, InvalidReceiptId())
        sale = self._sales.find(receipt_id.strip())
        if sale is None or not sale.is_completed:
            self.log.warning("receipt_not_found", receipt_id=receipt_id)
            raise ReceiptNotFound(receipt_id)
        return sale

    def _by_token(self, token: str) -> Optional[ReturnTransaction]:
        with self._lock:
            return self._find_by_token(token)

    def _find_by_token(self, token: str) -> Optional[ReturnTransaction]:
        # caller holds self._lock
        return next((r for r in self._returns.list() if r.correlation_token == token), None)

    def _current_user(self) -> str:
        return self._identity.current_user_id() if self._identity else ""


class ReturnAttempt:
    """One cashier's walk through a return, stage by stage."""

    def __init__(self, processor: ReturnProcessor, receipt_id: str):
        self.processor = processor
        self.receipt_id = receipt_id
        self.stage = ReturnStage.RECEIPT_LOOKUP
        self.receipt_lines: tuple[LineItem, ...] = ()
        self.selection: dict[str, int] = {}
        self.reason = ""
        self.validated_lines: tuple[ReturnedLine, ...] = ()
        self.result: Optional[ReturnTransaction] = None

    def lookup(self) -> tuple[LineItem, ...]:
        self._expect(ReturnStage.RECEIPT_LOOKUP)
        self.receipt_lines = self.processor.lookup_receipt(self.receipt_id)
        self.selection = {line.id: 0 for line in self.receipt_lines}
        self.stage = ReturnStage.ITEM_SELECTION
        return self.receipt_lines

    def select(self, line_id: str, return_quantity: int) -> None:
        if self.stage == ReturnStage.VALIDATED:
            self.stage = ReturnStage.ITEM_SELECTION
        self._expect(ReturnStage.ITEM_SELECTION)
        self.selection[line_id] = return_quantity

    def validate(self, reason: str) -> tuple[ReturnedLine, ...]:
        if self.stage == ReturnStage.VALIDATED:
            self.stage = ReturnStage.ITEM_SELECTION
        self._expect(ReturnStage.ITEM_SELECTION)
        self.validated_lines = self.processor.validate_return(self.receipt_id, self.selection, reason)
        self.reason = reason
        self.stage = ReturnStage.VALIDATED
        return self.validated_lines

    def record(
        self,
        processed_by: Optional[str] = None,
        correlation_token: Optional[str] = None,
    ) -> ReturnTransaction:
        self._expect(ReturnStage.VALIDATED)
        self.result = self.processor.process(
            self.receipt_id,
            self.selection,
            self.reason,
            processed_by=processed_by,
            correlation_token=correlation_token,
        )
        self.stage = ReturnStage.RECORDED
        return self.result

    def _expect(self, stage: ReturnStage) -> None:
        if self.stage != stage:
            raise InvalidStage(self.stage.value, stage.value)
