"""Data model shared by the cart, hold registry, return processor and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


def to_decimal(value) -> Decimal:
    """Convert a price or percentage to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class DiscountKind(str, Enum):
    NONE = "None"
    SENIOR_PWD = "SeniorPWD"
    CUSTOM = "Custom"


class TransactionStatus(str, Enum):
    OPEN = "OPEN"
    HELD = "HELD"
    COMPLETED = "COMPLETED"
    VOIDED = "VOIDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    OTHER = "OTHER"


class PrescriptionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Product:
    """A catalog entry as returned by the product catalog collaborator."""

    item_code: str
    product_name: str
    unit_price: Decimal
    unit: str = ""
    category: str = ""
    brand: str = ""
    dosage: str = ""
    requires_prescription: bool = False

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))


@dataclass(frozen=True)
class LineItem:
    """One product entry in a transaction.

    Quantity is the only field a cart changes after the line is added, and it
    does so by replacing the line with an updated copy.
    """

    id: str
    item_code: str
    product_name: str
    unit_price: Decimal
    quantity: int = 1
    unit: str = ""
    category: str = ""
    brand: str = ""
    dosage: str = ""
    requires_prescription: bool = False

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_product(cls, line_id: str, product: Product, quantity: int = 1) -> LineItem:
        return cls(
            id=line_id,
            item_code=product.item_code,
            product_name=product.product_name,
            unit_price=product.unit_price,
            quantity=quantity,
            unit=product.unit,
            category=product.category,
            brand=product.brand,
            dosage=product.dosage,
            requires_prescription=product.requires_prescription,
        )


@dataclass(frozen=True)
class DiscountSelection:
    """The single active discount policy of a transaction."""

    kind: DiscountKind = DiscountKind.NONE
    percent: Optional[Decimal] = None

    def __post_init__(self):
        if self.percent is not None:
            object.__setattr__(self, "percent", to_decimal(self.percent))

    @classmethod
    def none(cls) -> DiscountSelection:
        return cls(DiscountKind.NONE)

    @classmethod
    def senior_pwd(cls) -> DiscountSelection:
        return cls(DiscountKind.SENIOR_PWD)

    @classmethod
    def custom(cls, percent) -> DiscountSelection:
        return cls(DiscountKind.CUSTOM, to_decimal(percent))


@dataclass(frozen=True)
class Totals:
    """Derived amounts for a set of lines; never stored."""

    subtotal: Decimal
    discount_amount: Decimal
    discounted_subtotal: Decimal
    vat: Decimal
    total: Decimal


@dataclass(frozen=True)
class Transaction:
    """Immutable view of a transaction. Totals are recomputed on every access."""

    id: str
    line_items: tuple[LineItem, ...] = ()
    discount: DiscountSelection = field(default_factory=DiscountSelection.none)
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    star_points_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    processed_by: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    status: TransactionStatus = TransactionStatus.OPEN

    @property
    def totals(self) -> Totals:
        from .pricing import compute_totals

        return compute_totals(self.line_items, self.discount)

    @property
    def is_empty(self) -> bool:
        return not self.line_items


@dataclass(frozen=True)
class SaleTransaction:
    """A completed or voided transaction; the receipt a return refers to."""

    id: str
    line_items: tuple[LineItem, ...]
    total_amount: Decimal
    timestamp: datetime
    processed_by: str
    payment_method: Optional[PaymentMethod]
    status: TransactionStatus = TransactionStatus.COMPLETED
    discount: DiscountSelection = field(default_factory=DiscountSelection.none)
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    star_points_id: Optional[str] = None
    star_points_earned: int = 0
    prescription_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "total_amount", to_decimal(self.total_amount))
        object.__setattr__(self, "line_items", tuple(self.line_items))

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED


@dataclass(frozen=True)
class HeldTransaction:
    id: str
    transaction: Transaction
    held_at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class ReturnedLine:
    """A receipt line together with how much of it is coming back."""

    line_id: str
    item_code: str
    product_name: str
    unit_price: Decimal
    purchased_quantity: int
    return_quantity: int
    category: str = ""

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.return_quantity


@dataclass(frozen=True)
class ReturnRequestLine:
    line_id: str
    return_quantity: int


@dataclass(frozen=True)
class ReturnTransaction:
    id: str
    receipt_id: str
    returned_lines: tuple[ReturnedLine, ...]
    reason: str
    total_amount: Decimal
    timestamp: datetime
    processed_by: str
    correlation_token: Optional[str] = None


@dataclass(frozen=True)
class PrescriptionDetail:
    medicine_name: str
    dosage: str
    frequency: str
    duration: str
    quantity: int
    item_code: Optional[str] = None


@dataclass(frozen=True)
class Prescription:
    id: str
    patient_name: str
    doctor_name: str
    date: Optional[date] = None
    details: tuple[PrescriptionDetail, ...] = ()
    doctor_id: Optional[str] = None
    patient_age: Optional[int] = None
    notes: str = ""
    status: PrescriptionStatus = PrescriptionStatus.PENDING
    image_path: str = ""

    def __post_init__(self):
        object.__setattr__(self, "details", tuple(self.details))


@dataclass(frozen=True)
class StockLevel:
    item_code: str
    product_name: str
    current_stock: int
    reorder_point: int
    unit_price: Decimal
    category: str = ""

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    @property
    def total_value(self) -> Decimal:
        return self.unit_price * self.current_stock

    @property
    def is_low(self) -> bool:
        return self.current_stock <= self.reorder_point
