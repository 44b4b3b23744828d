"""Shared test data: catalog products, a fixed clock and record builders."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pos_engine.models import (
    LineItem,
    PaymentMethod,
    Product,
    ReturnedLine,
    ReturnTransaction,
    SaleTransaction,
    TransactionStatus,
)
from pos_engine.pricing import compute_totals


MANILA = timezone(timedelta(hours=8), "PHT")

PARACETAMOL = Product(
    "MED001", "Paracetamol 500mg", Decimal("5.99"), unit="tablet", category="Analgesics", dosage="500mg"
)
AMOXICILLIN = Product(
    "MED002", "Amoxicillin 500mg", Decimal("12.50"), unit="capsule", category="Antibiotics",
    requires_prescription=True,
)
VITAMIN_C = Product("SUP001", "Vitamin C 1000mg", Decimal("8.00"), category="Supplements")
COTTON = Product("GEN001", "Cotton Balls", Decimal("3.00"))


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def line(line_id: str, product: Product, quantity: int = 1) -> LineItem:
    return LineItem.from_product(line_id, product, quantity)


def make_sale(
    sale_id: str,
    lines,
    timestamp: datetime,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    status: TransactionStatus = TransactionStatus.COMPLETED,
) -> SaleTransaction:
    lines = tuple(lines)
    return SaleTransaction(
        id=sale_id,
        line_items=lines,
        total_amount=compute_totals(lines).total,
        timestamp=timestamp,
        processed_by="cashier-01",
        payment_method=payment_method,
        status=status,
    )


def make_return(return_id: str, receipt_id: str, returned, reason: str, timestamp: datetime) -> ReturnTransaction:
    returned_lines = tuple(
        ReturnedLine(
            line_id=f"{receipt_id}-{product.item_code}",
            item_code=product.item_code,
            product_name=product.product_name,
            unit_price=product.unit_price,
            purchased_quantity=quantity,
            return_quantity=quantity,
            category=product.category,
        )
        for product, quantity in returned
    )
    return ReturnTransaction(
        id=return_id,
        receipt_id=receipt_id,
        returned_lines=returned_lines,
        reason=reason,
        total_amount=sum((ln.amount for ln in returned_lines), Decimal(0)),
        timestamp=timestamp,
        processed_by="cashier-01",
    )
