"""Wiring: builds stores and services for one terminal from an EngineConfig."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

import structlog

from .catalog import IdentityProvider, InMemoryCatalog, ProductCatalog
from .config import EngineConfig, configure_logging, get_engine_config
from .holds import HoldRegistry
from .ids import Clock, MillisecondIdGenerator, TimestampIdGenerator, TransactionIdGenerator, utc_now
from .models import Prescription, ReturnTransaction, SaleTransaction, StockLevel
from .prescriptions import PrescriptionBook
from .reports import ReportAggregator
from .returns import ReturnProcessor
from .stores import InMemoryStore, MutableStore
from .terminal import TerminalSession

logger = structlog.get_logger(__name__)


@dataclass
class PosEngine:
    """Shared services of one terminal; sessions are opened per cashier."""

    config: EngineConfig
    catalog: ProductCatalog
    clock: Clock
    sales: MutableStore[SaleTransaction]
    return_store: MutableStore[ReturnTransaction]
    prescription_store: MutableStore[Prescription]
    stock: MutableStore[StockLevel]
    holds: HoldRegistry
    transaction_ids: TransactionIdGenerator
    prescriptions: PrescriptionBook
    reports: ReportAggregator
    _processors: dict[str, ReturnProcessor] = field(default_factory=dict)

    def __post_init__(self):
        self._return_ids = MillisecondIdGenerator("RET", self.clock)
        self._return_lock = threading.Lock()

    def open_session(self, identity: IdentityProvider) -> TerminalSession:
        """Open a cashier session with a fresh transaction."""
        session = TerminalSession(
            registry=self.holds,
            sales=self.sales,
            id_generator=self.transaction_ids,
            identity=identity,
            catalog=self.catalog,
            clock=self.clock,
            star_points_divisor=self.config.star_points_divisor,
            terminal_id=self.config.terminal_id,
        )
        session.start()
        logger.info(
            "session_opened",
            terminal_id=self.config.terminal_id,
            user_id=identity.current_user_id(),
        )
        return session

    def returns(self, identity: Optional[IdentityProvider] = None) -> ReturnProcessor:
        """Return processor attributing records to ``identity``.

        All processors share one return store, one id sequence and one
        lock, so a correlation token is honored whichever processor
        the retry arrives through.
        """
        key = identity.current_user_id() if identity else ""
        if key not in self._processors:
            self._processors[key] = ReturnProcessor(
                self.sales,
                self.return_store,
                identity=identity,
                id_generator=self._return_ids,
                clock=self.clock,
                lock=self._return_lock,
            )
        return self._processors[key]


def build_engine(
    config: Optional[EngineConfig] = None,
    catalog: Optional[ProductCatalog] = None,
    clock: Clock = utc_now,
) -> PosEngine:
    """Build an engine backed by in-memory stores.

    Args:
        config: Settings; read from the environment when omitted.
        catalog: Product catalog collaborator; empty when omitted.
        clock: Source of timestamps for every component.
    """
    config = config or get_engine_config()
    tz = config.tz

    sales = InMemoryStore("sales")
    returns = InMemoryStore("returns")
    prescriptions = InMemoryStore("prescriptions")
    stock = InMemoryStore("stock", key="item_code")

    engine = PosEngine(
        config=config,
        catalog=catalog if catalog is not None else InMemoryCatalog(),
        clock=clock,
        sales=sales,
        return_store=returns,
        prescription_store=prescriptions,
        stock=stock,
        holds=HoldRegistry(
            InMemoryStore("held"),
            TimestampIdGenerator("HELD", clock, tz),
            clock,
        ),
        transaction_ids=TransactionIdGenerator(config.branch_id, clock, tz),
        prescriptions=PrescriptionBook(
            prescriptions,
            TimestampIdGenerator("PRES", clock, tz),
            clock,
            tz,
        ),
        reports=ReportAggregator(
            sales,
            returns,
            prescriptions,
            stock,
            clock=clock,
            tz=tz,
            top_selling_limit=config.top_selling_limit,
        ),
    )
    logger.info(
        "engine_built",
        branch_id=config.branch_id,
        terminal_id=config.terminal_id,
        timezone=config.timezone or "local",
    )
    return engine


def engine_from_env(catalog: Optional[ProductCatalog] = None) -> PosEngine:
    """Read config from the environment, configure logging and build the engine."""
    config = get_engine_config()
    configure_logging(config.log_level, config.log_format)
    return build_engine(config, catalog)
