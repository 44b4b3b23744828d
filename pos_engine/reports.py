"""Report aggregation over sale, return, prescription and stock records.

Reports are projections: computed on demand from a snapshot of the stores,
never persisted, and never written back. Each report type is a
ReportProjection subclass registered by its ``report_type``.

Example:
    aggregator = ReportAggregator(sales, returns, prescriptions, stock)
    report = aggregator.daily_sales(date(2024, 1, 20))
    report.top_selling_items[0].item_code
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

import structlog

from .errors import InvalidDateRange
from .ids import Clock, local_time, utc_now
from .models import (
    PaymentMethod,
    Prescription,
    ReturnTransaction,
    SaleTransaction,
    StockLevel,
)
from .stores import Store

logger = structlog.get_logger(__name__)

UNCATEGORIZED = "Uncategorized"

DateLike = Union[date, datetime]


class ReportType(str, Enum):
    DAILY_SALES = "DAILY_SALES"
    INVENTORY = "INVENTORY"
    PRESCRIPTIONS = "PRESCRIPTIONS"
    RETURNS = "RETURNS"


@dataclass(frozen=True)
class ReportFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    doctor_id: Optional[str] = None
    product_code: Optional[str] = None


@dataclass(frozen=True)
class ItemSales:
    item_code: str
    product_name: str
    quantity: int
    total_amount: Decimal


@dataclass(frozen=True)
class DailySalesReport:
    date: date
    total_sales: Decimal = Decimal(0)
    total_transactions: int = 0
    total_returns: Decimal = Decimal(0)
    net_sales: Decimal = Decimal(0)
    sales_by_category: dict[str, Decimal] = field(default_factory=dict)
    sales_by_payment_method: dict[str, Decimal] = field(default_factory=dict)
    top_selling_items: tuple[ItemSales, ...] = ()


@dataclass(frozen=True)
class InventoryReport:
    timestamp: datetime
    items: tuple[StockLevel, ...] = ()
    total_items: int = 0
    total_value: Decimal = Decimal(0)
    low_stock_items: int = 0


@dataclass(frozen=True)
class PrescriptionReport:
    start_date: date
    end_date: date
    total_prescriptions: int = 0
    prescriptions_by_doctor: dict[str, int] = field(default_factory=dict)
    prescriptions_by_medicine: dict[str, int] = field(default_factory=dict)
    average_items_per_prescription: float = 0.0


@dataclass(frozen=True)
class ReturnReport:
    start_date: date
    end_date: date
    total_returns: int = 0
    total_amount: Decimal = Decimal(0)
    returns_by_reason: dict[str, int] = field(default_factory=dict)
    returns_by_product: tuple[ItemSales, ...] = ()


@dataclass(frozen=True)
class ReportSource:
    """A point-in-time copy of every store a report reads."""

    sales: tuple[SaleTransaction, ...] = ()
    returns: tuple[ReturnTransaction, ...] = ()
    prescriptions: tuple[Prescription, ...] = ()
    stock: tuple[StockLevel, ...] = ()


@dataclass(frozen=True)
class ReportContext:
    start_date: date
    end_date: date
    generated_at: datetime
    tz: Optional[tzinfo] = None
    top_selling_limit: int = 5
    filters: ReportFilters = field(default_factory=ReportFilters)

    def local_date(self, ts: datetime) -> date:
        return local_time(ts, self.tz).date()

    def in_range(self, ts: DateLike) -> bool:
        day = self.local_date(ts) if isinstance(ts, datetime) else ts
        return self.start_date <= day <= self.end_date


class ReportProjection(ABC):
    """Base class for report projections.

    Subclasses must set ``report_type`` and implement ``project``.
    """

    report_type: ReportType
    _registry: dict[ReportType, type[ReportProjection]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        if inspect.isabstract(cls):
            return
        if not isinstance(getattr(cls, "report_type", None), ReportType):
            raise TypeError(f"{cls.__name__} must define 'report_type' class attribute")
        if cls.report_type in ReportProjection._registry:
            raise TypeError(f"{cls.__name__}: duplicate projection for {cls.report_type.value}")
        ReportProjection._registry[cls.report_type] = cls

    @abstractmethod
    def project(self, source: ReportSource, ctx: ReportContext):
        """Build the report from a store snapshot."""

    @classmethod
    def for_type(cls, report_type: ReportType) -> ReportProjection:
        return cls._registry[ReportType(report_type)]()


def _rank_items(totals: dict[str, list], limit: Optional[int] = None) -> tuple[ItemSales, ...]:
    """Revenue desc, then quantity desc, then item code asc."""
    ranked = sorted(
        (
            ItemSales(item_code=code, product_name=name, quantity=qty, total_amount=amount)
            for code, (name, qty, amount) in totals.items()
        ),
        key=lambda item: (-item.total_amount, -item.quantity, item.item_code),
    )
    return tuple(ranked if limit is None else ranked[:limit])


def _accumulate(totals: dict[str, list], code: str, name: str, quantity: int, amount: Decimal) -> None:
    entry = totals.setdefault(code, [name, 0, Decimal(0)])
    entry[1] += quantity
    entry[2] += amount


def _return_amount(record: ReturnTransaction, category: Optional[str]) -> Decimal:
    if not category:
        return record.total_amount
    return sum(
        (line.amount for line in record.returned_lines if (line.category or UNCATEGORIZED) == category),
        Decimal(0),
    )


class DailySalesProjection(ReportProjection):
    report_type = ReportType.DAILY_SALES

    def project(self, source: ReportSource, ctx: ReportContext) -> DailySalesReport:
        filters = ctx.filters
        sales = [
            sale
            for sale in source.sales
            if sale.is_completed
            and ctx.in_range(sale.timestamp)
            and (filters.payment_method is None or sale.payment_method == filters.payment_method)
            and (
                not filters.category
                or any((line.category or UNCATEGORIZED) == filters.category for line in sale.line_items)
            )
        ]

        by_payment: dict[str, Decimal] = {}
        by_category: dict[str, Decimal] = {}
        items: dict[str, list] = {}

        for sale in sales:
            method = sale.payment_method.value if sale.payment_method else PaymentMethod.OTHER.value
            by_payment[method] = by_payment.get(method, Decimal(0)) + sale.total_amount

            for line in sale.line_items:
                category = line.category or UNCATEGORIZED
                if filters.category and category != filters.category:
                    continue
                by_category[category] = by_category.get(category, Decimal(0)) + line.line_total
                _accumulate(items, line.item_code, line.product_name, line.quantity, line.line_total)

        total_sales = sum((sale.total_amount for sale in sales), Decimal(0))
        methods = {sale.id: sale.payment_method for sale in source.sales}
        total_returns = sum(
            (
                _return_amount(record, filters.category)
                for record in source.returns
                if ctx.in_range(record.timestamp)
                and (filters.payment_method is None or methods.get(record.receipt_id) == filters.payment_method)
            ),
            Decimal(0),
        )

        return DailySalesReport(
            date=ctx.start_date,
            total_sales=total_sales,
            total_transactions=len(sales),
            total_returns=total_returns,
            net_sales=total_sales - total_returns,
            sales_by_category=by_category,
            sales_by_payment_method=by_payment,
            top_selling_items=_rank_items(items, ctx.top_selling_limit),
        )


class InventoryProjection(ReportProjection):
    report_type = ReportType.INVENTORY

    def project(self, source: ReportSource, ctx: ReportContext) -> InventoryReport:
        category = ctx.filters.category
        items = tuple(s for s in source.stock if not category or s.category == category)
        return InventoryReport(
            timestamp=ctx.generated_at,
            items=items,
            total_items=len(items),
            total_value=sum((s.total_value for s in items), Decimal(0)),
            low_stock_items=sum(1 for s in items if s.is_low),
        )


class PrescriptionProjection(ReportProjection):
    report_type = ReportType.PRESCRIPTIONS

    def project(self, source: ReportSource, ctx: ReportContext) -> PrescriptionReport:
        doctor_filter = ctx.filters.doctor_id
        selected = [
            p
            for p in source.prescriptions
            if p.date is not None
            and ctx.in_range(p.date)
            and (not doctor_filter or doctor_filter in (p.doctor_id, p.doctor_name))
        ]

        by_doctor = Counter(p.doctor_id or p.doctor_name for p in selected)
        by_medicine = Counter(d.item_code or d.medicine_name for p in selected for d in p.details)
        lines = sum(len(p.details) for p in selected)

        return PrescriptionReport(
            start_date=ctx.start_date,
            end_date=ctx.end_date,
            total_prescriptions=len(selected),
            prescriptions_by_doctor=dict(by_doctor),
            prescriptions_by_medicine=dict(by_medicine),
            average_items_per_prescription=lines / len(selected) if selected else 0.0,
        )


class ReturnProjection(ReportProjection):
    report_type = ReportType.RETURNS

    def project(self, source: ReportSource, ctx: ReportContext) -> ReturnReport:
        product = ctx.filters.product_code
        by_reason: Counter = Counter()
        products: dict[str, list] = {}
        count = 0
        total = Decimal(0)

        for record in source.returns:
            if not ctx.in_range(record.timestamp):
                continue
            lines = [ln for ln in record.returned_lines if not product or ln.item_code == product]
            if not lines:
                continue
            count += 1
            by_reason[record.reason] += 1
            for ln in lines:
                total += ln.amount
                _accumulate(products, ln.item_code, ln.product_name, ln.return_quantity, ln.amount)

        return ReturnReport(
            start_date=ctx.start_date,
            end_date=ctx.end_date,
            total_returns=count,
            total_amount=total,
            returns_by_reason=dict(by_reason),
            returns_by_product=_rank_items(products),
        )


class ReportAggregator:
    """Read-side entry point for all reports.

    Args:
        sales: Completed and voided sales.
        returns: Recorded returns.
        prescriptions: Prescription records.
        stock: Current stock levels.
        clock: Source of "now" for default dates and the inventory timestamp.
        tz: Zone for register-local dates; None means the system zone.
        top_selling_limit: Length of the daily top-selling list.
    """

    def __init__(
        self,
        sales: Store[SaleTransaction],
        returns: Store[ReturnTransaction],
        prescriptions: Optional[Store[Prescription]] = None,
        stock: Optional[Store[StockLevel]] = None,
        clock: Clock = utc_now,
        tz: Optional[tzinfo] = None,
        top_selling_limit: int = 5,
    ):
        self._sales = sales
        self._returns = returns
        self._prescriptions = prescriptions
        self._stock = stock
        self._clock = clock
        self._tz = tz
        self.top_selling_limit = top_selling_limit
        self.log = logger.bind(component="reports")

    def daily_sales(self, day: DateLike, filters: Optional[ReportFilters] = None) -> DailySalesReport:
        day = self._as_date(day)
        return self._run(ReportType.DAILY_SALES, day, day, filters)

    def inventory(self, filters: Optional[ReportFilters] = None) -> InventoryReport:
        today = self.today()
        return self._run(ReportType.INVENTORY, today, today, filters)

    def prescriptions(
        self,
        start: DateLike,
        end: DateLike,
        filters: Optional[ReportFilters] = None,
    ) -> PrescriptionReport:
        return self._run(ReportType.PRESCRIPTIONS, self._as_date(start), self._as_date(end), filters)

    def returns(
        self,
        start: DateLike,
        end: DateLike,
        filters: Optional[ReportFilters] = None,
    ) -> ReturnReport:
        return self._run(ReportType.RETURNS, self._as_date(start), self._as_date(end), filters)

    def generate(self, report_type: ReportType, filters: Optional[ReportFilters] = None):
        """Build any report type; the date range comes from the filters, default today."""
        filters = filters or ReportFilters()
        start = filters.start_date or self.today()
        end = filters.end_date or start
        if ReportType(report_type) == ReportType.DAILY_SALES:
            end = start
        return self._run(ReportType(report_type), start, end, filters)

    def today(self) -> date:
        return local_time(self._clock(), self._tz).date()

    def snapshot(self) -> ReportSource:
        return ReportSource(
            sales=self._sales.list(),
            returns=self._returns.list(),
            prescriptions=self._prescriptions.list() if self._prescriptions is not None else (),
            stock=self._stock.list() if self._stock is not None else (),
        )

    def _run(self, report_type: ReportType, start: date, end: date, filters: Optional[ReportFilters]):
        if start > end:
            self.log.warning("invalid_report_range", report=report_type.value, start=str(start), end=str(end))
            raise InvalidDateRange(start, end)

        ctx = ReportContext(
            start_date=start,
            end_date=end,
            generated_at=self._clock(),
            tz=self._tz,
            top_selling_limit=self.top_selling_limit,
            filters=filters or ReportFilters(),
        )
        report = ReportProjection.for_type(report_type).project(self.snapshot(), ctx)
        self.log.info("report_generated", report=report_type.value, start=str(start), end=str(end))
        return report

    def _as_date(self, value: DateLike) -> date:
        if isinstance(value, datetime):
            return local_time(value, self._tz).date()
        return value
