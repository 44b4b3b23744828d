"""Pytest fixtures shared by unit and feature tests."""

from datetime import datetime

import pytest

from fixtures import (
    AMOXICILLIN,
    COTTON,
    PARACETAMOL,
    VITAMIN_C,
    FakeClock,
    line,
    make_sale,
)
from pos_engine.catalog import InMemoryCatalog, StaticIdentity
from pos_engine.config import EngineConfig
from pos_engine.engine import build_engine
from pos_engine.holds import HoldRegistry
from pos_engine.ids import TimestampIdGenerator
from pos_engine.returns import ReturnProcessor
from pos_engine.stores import InMemoryStore


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 20, 10, 30, 0))


@pytest.fixture
def catalog():
    return InMemoryCatalog([PARACETAMOL, AMOXICILLIN, VITAMIN_C, COTTON])


@pytest.fixture
def identity():
    return StaticIdentity("cashier-01")


@pytest.fixture
def sales():
    return InMemoryStore("sales")


@pytest.fixture
def return_store():
    return InMemoryStore("returns")


@pytest.fixture
def registry(clock):
    return HoldRegistry(InMemoryStore("held"), TimestampIdGenerator("HELD", clock), clock)


@pytest.fixture
def receipt(sales, clock):
    """A completed sale: two Paracetamol on line L1, one Vitamin C on line L2."""
    sale = make_sale(
        "B001-240120-00001",
        [line("L1", PARACETAMOL, 2), line("L2", VITAMIN_C, 1)],
        clock(),
    )
    sales.append(sale)
    return sale


@pytest.fixture
def processor(sales, return_store, identity, clock):
    return ReturnProcessor(sales, return_store, identity=identity, clock=clock)


@pytest.fixture
def engine(catalog, clock):
    return build_engine(EngineConfig(), catalog, clock)
