from __future__ import annotations

import os

import pytest

from entitystate.adapters.memory import InMemoryDocumentStore
from entitystate.domain.delta import DeltaEngine
from entitystate.domain.registry import EntityRegistry
from tests.helpers.clocks import FakeClock, VirtualTimer

os.environ.setdefault("ENTITYSTATE_DATABASE_URI", "sqlite+pysqlite:///:memory:")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer() -> VirtualTimer:
    return VirtualTimer()


@pytest.fixture
def engine(clock: FakeClock) -> DeltaEngine:
    return DeltaEngine(clock=clock)


@pytest.fixture
def registry(engine: DeltaEngine, clock: FakeClock) -> EntityRegistry:
    return EntityRegistry(engine=engine, clock=clock, storage_key="test:entities")


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()
