"""Error types for the POS engine.

Three families are surfaced to callers:

- ValidationError: the request has a bad shape or range.
- NotFoundError: a referenced record does not exist.
- ConflictError: the request lost a race or clashes with current state.

The core never retries any of them.
"""

from typing import Optional


class errmsg:
    """Error message constants."""

    INVALID_QUANTITY = "Quantity must be a whole number of at least 1"
    NEGATIVE_PRICE = "Unit price cannot be negative"
    DUPLICATE_NOT_MERGED = "Item already in cart; repeated scans are not merged"
    EMPTY_TRANSACTION = "Transaction has no items"
    LINE_NOT_FOUND = "Line not in cart"
    PRODUCT_NOT_FOUND = "Product not found"
    HELD_NOT_FOUND = "Held transaction not found"
    ALREADY_RECALLED = "Held transaction was already recalled"
    TRANSACTION_IN_PROGRESS = "Current transaction has items"
    RECEIPT_ID_REQUIRED = "Receipt ID is required"
    RECEIPT_NOT_FOUND = "Receipt not found"
    LINE_NOT_ON_RECEIPT = "Line is not on the receipt"
    OVER_RETURN = "Return quantity must be between 1 and the purchased quantity"
    NO_ITEMS_SELECTED = "No items selected for return"
    REASON_REQUIRED = "Please provide a reason for return"
    PATIENT_DOCTOR_REQUIRED = "Patient name and doctor name are required"
    DETAILS_REQUIRED = "At least one medicine detail is required"
    PRESCRIPTION_NOT_FOUND = "Prescription not found"
    INVALID_DATE_RANGE = "Start date must not be after end date"
    DUPLICATE_RECORD = "Record already exists"
    RECORD_NOT_FOUND = "Record not found"


class PosError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class ValidationError(PosError):
    """Input failed a shape or range check."""


class NotFoundError(PosError):
    """A referenced record does not exist."""


class ConflictError(PosError):
    """The operation clashes with concurrent or current state."""


# Validation


class InvalidLineItem(ValidationError):
    """A line item has a bad quantity or price."""

    def __init__(self, message: str, line_id: str = ""):
        super().__init__(f"{message} (line {line_id})" if line_id else message)
        self.line_id = line_id


class DuplicateNotMerged(ValidationError):
    """The caller asked to merge a repeated scan; lines are never merged."""

    def __init__(self, item_code: str):
        super().__init__(f"{errmsg.DUPLICATE_NOT_MERGED}: {item_code}")
        self.item_code = item_code


class EmptyTransaction(ValidationError):
    def __init__(self, message: str = errmsg.EMPTY_TRANSACTION):
        super().__init__(message)


class InvalidReceiptId(ValidationError):
    def __init__(self, message: str = errmsg.RECEIPT_ID_REQUIRED):
        super().__init__(message)


class OverReturn(ValidationError):
    """A return quantity falls outside [1, purchased quantity]."""

    def __init__(self, line_id: str, requested: int, purchased: int):
        super().__init__(
            f"{errmsg.OVER_RETURN}: line {line_id} requested {requested}, purchased {purchased}"
        )
        self.line_id = line_id
        self.requested = requested
        self.purchased = purchased


class NoItemsSelected(ValidationError):
    def __init__(self, message: str = errmsg.NO_ITEMS_SELECTED):
        super().__init__(message)


class MissingReason(ValidationError):
    def __init__(self, message: str = errmsg.REASON_REQUIRED):
        super().__init__(message)


class LineNotOnReceipt(ValidationError):
    def __init__(self, receipt_id: str, line_id: str):
        super().__init__(f"{errmsg.LINE_NOT_ON_RECEIPT}: {receipt_id}/{line_id}")
        self.receipt_id = receipt_id
        self.line_id = line_id


class InvalidPrescription(ValidationError):
    """Prescription failed validation; detail_index names the offending detail."""

    def __init__(self, message: str, detail_index: Optional[int] = None):
        super().__init__(message)
        self.detail_index = detail_index


class InvalidDateRange(ValidationError):
    def __init__(self, start, end):
        super().__init__(f"{errmsg.INVALID_DATE_RANGE}: {start} > {end}")
        self.start = start
        self.end = end


class ConfigError(ValidationError):
    """An environment setting could not be parsed."""

    def __init__(self, name: str, value: str, expected: str):
        super().__init__(f"invalid {name}={value!r}: expected {expected}")
        self.name = name
        self.value = value


# Not found


class ReceiptNotFound(NotFoundError):
    def __init__(self, receipt_id: str):
        super().__init__(f"{errmsg.RECEIPT_NOT_FOUND}: {receipt_id}")
        self.receipt_id = receipt_id


class HeldTransactionNotFound(NotFoundError):
    def __init__(self, held_id: str, message: str = errmsg.HELD_NOT_FOUND):
        super().__init__(f"{message}: {held_id}")
        self.held_id = held_id


class LineNotFound(NotFoundError):
    def __init__(self, line_id: str):
        super().__init__(f"{errmsg.LINE_NOT_FOUND}: {line_id}")
        self.line_id = line_id


class ProductNotFound(NotFoundError):
    def __init__(self, item_code: str):
        super().__init__(f"{errmsg.PRODUCT_NOT_FOUND}: {item_code}")
        self.item_code = item_code


class PrescriptionNotFound(NotFoundError):
    def __init__(self, prescription_id: str):
        super().__init__(f"{errmsg.PRESCRIPTION_NOT_FOUND}: {prescription_id}")
        self.prescription_id = prescription_id


class RecordNotFound(NotFoundError):
    def __init__(self, key: str):
        super().__init__(f"{errmsg.RECORD_NOT_FOUND}: {key}")
        self.key = key


# Conflict


class AlreadyRecalled(ConflictError, HeldTransactionNotFound):
    """Lost a recall race: another session already resumed this transaction.

    Also a HeldTransactionNotFound, so callers that only handle NotFound keep working.
    """

    def __init__(self, held_id: str):
        HeldTransactionNotFound.__init__(self, held_id, errmsg.ALREADY_RECALLED)


class TransactionInProgress(ConflictError):
    def __init__(self, transaction_id: str):
        super().__init__(f"{errmsg.TRANSACTION_IN_PROGRESS}: {transaction_id}")
        self.transaction_id = transaction_id


class DuplicateRecord(ConflictError):
    def __init__(self, key: str):
        super().__init__(f"{errmsg.DUPLICATE_RECORD}: {key}")
        self.key = key


class InvalidStage(ConflictError):
    """A step was taken out of order in a multi-step workflow."""

    def __init__(self, current: str, expected: str):
        super().__init__(f"workflow is at {current}, expected {expected}")
        self.current = current
        self.expected = expected
