"""Transaction and reporting engine for a pharmacy point-of-sale terminal."""

from .models import (
    DiscountKind,
    DiscountSelection,
    HeldTransaction,
    LineItem,
    PaymentMethod,
    Prescription,
    PrescriptionDetail,
    PrescriptionStatus,
    Product,
    ReturnedLine,
    ReturnRequestLine,
    ReturnTransaction,
    SaleTransaction,
    StockLevel,
    Totals,
    Transaction,
    TransactionStatus,
)
from .errors import (
    PosError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidLineItem,
    DuplicateNotMerged,
    EmptyTransaction,
    InvalidReceiptId,
    OverReturn,
    NoItemsSelected,
    MissingReason,
    LineNotOnReceipt,
    InvalidPrescription,
    InvalidDateRange,
    ConfigError,
    ReceiptNotFound,
    HeldTransactionNotFound,
    LineNotFound,
    ProductNotFound,
    PrescriptionNotFound,
    RecordNotFound,
    AlreadyRecalled,
    TransactionInProgress,
    DuplicateRecord,
    InvalidStage,
)
from .pricing import (
    SENIOR_PWD_RATE,
    VAT_RATE,
    compute_totals,
    discount_rate,
    star_points_earned,
    to_currency,
)
from .cart import CartManager, CartState
from .holds import HoldRegistry
from .returns import ReturnAttempt, ReturnProcessor, ReturnStage
from .reports import (
    DailySalesReport,
    InventoryReport,
    ItemSales,
    PrescriptionReport,
    ReportAggregator,
    ReportFilters,
    ReportType,
    ReturnReport,
)
from .prescriptions import PrescriptionBook, validate_prescription
from .terminal import TerminalSession
from .catalog import IdentityProvider, InMemoryCatalog, ProductCatalog, StaticIdentity
from .stores import InMemoryStore, MutableStore, Store
from .ids import MillisecondIdGenerator, TimestampIdGenerator, TransactionIdGenerator
from .config import EngineConfig, configure_logging, get_engine_config
from .engine import PosEngine, build_engine, engine_from_env

__all__ = [
    # Models
    "DiscountKind",
    "DiscountSelection",
    "HeldTransaction",
    "LineItem",
    "PaymentMethod",
    "Prescription",
    "PrescriptionDetail",
    "PrescriptionStatus",
    "Product",
    "ReturnedLine",
    "ReturnRequestLine",
    "ReturnTransaction",
    "SaleTransaction",
    "StockLevel",
    "Totals",
    "Transaction",
    "TransactionStatus",
    # Errors
    "PosError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidLineItem",
    "DuplicateNotMerged",
    "EmptyTransaction",
    "InvalidReceiptId",
    "OverReturn",
    "NoItemsSelected",
    "MissingReason",
    "LineNotOnReceipt",
    "InvalidPrescription",
    "InvalidDateRange",
    "ConfigError",
    "ReceiptNotFound",
    "HeldTransactionNotFound",
    "LineNotFound",
    "ProductNotFound",
    "PrescriptionNotFound",
    "RecordNotFound",
    "AlreadyRecalled",
    "TransactionInProgress",
    "DuplicateRecord",
    "InvalidStage",
    # Pricing
    "SENIOR_PWD_RATE",
    "VAT_RATE",
    "compute_totals",
    "discount_rate",
    "star_points_earned",
    "to_currency",
    # Components
    "CartManager",
    "CartState",
    "HoldRegistry",
    "ReturnAttempt",
    "ReturnProcessor",
    "ReturnStage",
    "PrescriptionBook",
    "validate_prescription",
    "TerminalSession",
    # Reports
    "DailySalesReport",
    "InventoryReport",
    "ItemSales",
    "PrescriptionReport",
    "ReportAggregator",
    "ReportFilters",
    "ReportType",
    "ReturnReport",
    # Collaborators and stores
    "IdentityProvider",
    "InMemoryCatalog",
    "ProductCatalog",
    "StaticIdentity",
    "InMemoryStore",
    "MutableStore",
    "Store",
    "MillisecondIdGenerator",
    "TimestampIdGenerator",
    "TransactionIdGenerator",
    # Wiring
    "EngineConfig",
    "configure_logging",
    "get_engine_config",
    "PosEngine",
    "build_engine",
    "engine_from_env",
]
