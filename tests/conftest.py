from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from triggermem.models.core import Extraction
from triggermem.services.memory_engine import MemoryEngine
from triggermem.services.oracle import Oracle
from triggermem.utils.config import ScoringConfig, StorageConfig
from triggermem.utils.storage import InMemoryStore

START = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, hours: float = 0, minutes: float = 0) -> datetime:
        self.now = self.now + timedelta(days=days, hours=hours, minutes=minutes)
        return self.now


class StubOracle(Oracle):
    """Oracle returning canned answers and recording every call."""

    def __init__(self, similarities: Optional[Dict[str, float]] = None, extraction: Optional[Extraction] = None):
        self.similarities = similarities or {}
        self.extraction = extraction
        self.similarity_calls: List[Tuple[str, str]] = []
        self.extract_calls: List[str] = []
        self.fail_similarity = False
        self.fail_extract = False

    async def similarity(self, text_a: str, text_b: str) -> float:
        self.similarity_calls.append((text_a, text_b))
        if self.fail_similarity:
            raise RuntimeError('oracle unreachable')
        return self.similarities.get(text_b, 0.0)

    async def extract(self, message: str) -> Optional[Extraction]:
        self.extract_calls.append(message)
        if self.fail_extract:
            raise RuntimeError('oracle unreachable')
        return self.extraction


class CountingStore(InMemoryStore):
    """In-memory backend that counts writes."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.writes: List[str] = []

    def set(self, key: str, value: str) -> None:
        self.writes.append(key)
        super().set(key, value)


def make_storage_config() -> StorageConfig:
    return StorageConfig(backend='memory',
                         path='',
                         triggers_key='triggers_v2',
                         memories_key='memories_v2',
                         last_decay_key='last_decay',
                         legacy_memories_key='memories')


def assert_links_symmetric(engine: MemoryEngine) -> None:
    store = engine.store
    for trigger in store.triggers.values():
        for memory_id in trigger.memory_links:
            assert memory_id in store.memories
            assert trigger.id in store.memories[memory_id].trigger_links
    for memory in store.memories.values():
        for trigger_id in memory.trigger_links:
            assert trigger_id in store.triggers
            assert memory.id in store.triggers[trigger_id].memory_links


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def oracle():
    return StubOracle()


@pytest.fixture
def backend():
    return CountingStore()


@pytest.fixture
def scoring_config():
    return ScoringConfig()


@pytest.fixture
def storage_config():
    return make_storage_config()


@pytest.fixture
def engine(backend, oracle, scoring_config, storage_config, clock):
    return MemoryEngine(backend, oracle, scoring_config, storage_config, clock)
