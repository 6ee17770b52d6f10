"""
Memory Engine: the public surface over the trigger cache and memory tables.
"""

from collections import Counter
from datetime import timezone
from typing import Any, Dict, Iterable, List, Optional

from ..models.core import Category, Memory, Trigger, normalize_word
from ..utils.config import AppConfig, ScoringConfig, StorageConfig
from ..utils.logging_config import get_logger
from ..utils.storage import KeyValueStore, create_store
from ..utils.timestamp_utils import Clock, to_iso, utc_now
from .context_builder import ContextBuilder, recent_memories
from .entity_store import EntityStore, parse_records
from .extraction import ExtractionOutcome, Extractor
from .matcher import Matcher, ScanResult
from .oracle import Oracle, create_oracle
from .scoring import ScoringEngine
from .synonyms import expand

logger = get_logger(__name__)

EXPORT_VERSION = 2


class MemoryEngineError(Exception):
    """Custom exception for memory engine errors."""
    pass


class MemoryEngine:
    """Self-scoring, self-decaying cache of triggers and the memories they surface.

    The engine is single-writer: one instance per persisted store, no
    internal locking. Every mutating call writes both tables through to the
    backend before returning.
    """

    def __init__(self,
                 backend: KeyValueStore,
                 oracle: Oracle,
                 scoring_config: Optional[ScoringConfig] = None,
                 storage_config: Optional[StorageConfig] = None,
                 clock: Clock = utc_now):
        """
        Initialize the engine, load persisted state and apply pending decay.

        Args:
            backend: Durable key-value store
            oracle: Similarity and extraction oracle
            scoring_config: Scoring constants (uses global config if None)
            storage_config: Storage key names (uses global config if None)
            clock: Time source returning aware datetimes
        """
        if scoring_config is None or storage_config is None:
            from ..utils.config import config as default_config
            scoring_config = scoring_config or default_config.scoring
            storage_config = storage_config or default_config.storage

        self.config = scoring_config
        self.clock = clock
        self.oracle = oracle
        self.scoring = ScoringEngine(scoring_config)
        self.store = EntityStore(backend, storage_config, clock)
        self.matcher = Matcher(self.store, self.scoring, oracle, scoring_config, clock)
        self.extractor = Extractor(self.store, self.scoring, oracle, scoring_config, clock)
        self.context_builder = ContextBuilder(self.store, self.matcher, scoring_config)

        self.store.load()
        self.apply_daily_decay()

        logger.info(f'Initialized MemoryEngine with {len(self.store.triggers)} triggers '
                    f'and {len(self.store.memories)} memories')

    # Creation

    def create_trigger(self,
                       word: str,
                       category: Any = Category.OTHER,
                       importance: int = 5,
                       synonyms: Optional[Iterable[str]] = None) -> Trigger:
        """Create a trigger seeded with the static synonym expansion.

        Raises:
            ValueError: If the word is empty after normalization
        """
        normalized = normalize_word(word)
        if not normalized:
            raise ValueError('Trigger word must not be empty')

        trigger = self.store.add_trigger(normalized,
                                         category=Category.parse(category),
                                         score=self.scoring.initial_score(importance),
                                         synonyms=expand(normalized) + list(synonyms or []))
        self.store.save()
        logger.debug(f'Created trigger {normalized!r} with score {trigger.score}')
        return trigger

    def create_memory(self,
                      content: str,
                      category: Any = Category.OTHER,
                      importance: int = 5,
                      trigger_ids: Optional[Iterable[str]] = None) -> Memory:
        """Create a memory linked to the given existing triggers.

        Raises:
            ValueError: If the content is empty
        """
        if not isinstance(content, str) or not content.strip():
            raise ValueError('Memory content must not be empty')

        memory = self.store.add_memory(content,
                                       category=Category.parse(category),
                                       importance=importance,
                                       trigger_ids=trigger_ids or [])
        self.store.save()
        return memory

    # Scoring

    def current_score(self, trigger: Trigger) -> int:
        return self.scoring.current_score(trigger, self.clock())

    def activate(self, trigger_id: str) -> Optional[Trigger]:
        """Reinforce a trigger. Unknown ids are ignored."""
        trigger = self.store.triggers.get(trigger_id)
        if trigger is None:
            return None
        self.scoring.activate(trigger, self.clock())
        self.store.save()
        return trigger

    def apply_daily_decay(self) -> bool:
        """Decay stored scores once per UTC calendar day.

        Returns:
            True if decay ran, False if it already ran today
        """
        today = self.clock().astimezone(timezone.utc).date()
        days = self.scoring.decay_days(today, self.store.get_last_decay())
        if days == 0:
            return False

        changed = self.scoring.decay(self.store.triggers.values(), days)
        self.store.save()
        self.store.set_last_decay(today)
        logger.info(f'Applied {days} day(s) of decay to {changed} triggers')
        return True

    def get_active_triggers(self) -> List[Trigger]:
        return [t for t, _ in self.scoring.rank_active(self.store.triggers.values(), self.clock())]

    def get_high_priority_triggers(self) -> List[Trigger]:
        ranked = self.scoring.rank_active(self.store.triggers.values(), self.clock())
        return [t for t, score in ranked if score >= self.config.active_threshold]

    # Matching, extraction and context

    async def scan(self, message: str) -> ScanResult:
        return await self.matcher.scan(message)

    async def extract_and_store(self, message: str) -> Optional[ExtractionOutcome]:
        return await self.extractor.extract_and_store(message)

    async def get_context_for_message(self, message: str) -> str:
        return await self.context_builder.get_context_for_message(message)

    # Queries

    def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        return self.store.triggers.get(trigger_id)

    def get_memory(self, memory_id: str) -> Optional[Memory]:
        return self.store.memories.get(memory_id)

    def list_triggers(self, category: Optional[Any] = None) -> List[Trigger]:
        triggers = list(self.store.triggers.values())
        if category is None:
            return triggers
        wanted = Category.parse(category)
        return [t for t in triggers if t.category == wanted]

    def list_memories(self, category: Optional[Any] = None) -> List[Memory]:
        memories = list(self.store.memories.values())
        if category is None:
            return memories
        wanted = Category.parse(category)
        return [m for m in memories if m.category == wanted]

    def get_recent_memories(self, limit: int = 10) -> List[Memory]:
        return recent_memories(self.store, limit)

    def get_triggers_grouped_by_category(self) -> Dict[str, List[Trigger]]:
        grouped: Dict[str, List[Trigger]] = {}
        for trigger in self.get_active_triggers():
            grouped.setdefault(trigger.category.value, []).append(trigger)
        return grouped

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate counts over both tables.

        ``active_triggers`` counts triggers at or above the archive threshold,
        ``high_priority_triggers`` those at or above the active threshold and
        ``archived_triggers`` the rest.
        """
        ranked = self.scoring.rank_active(self.store.triggers.values(), self.clock())
        active = [t for t, _ in ranked]
        memories = list(self.store.memories.values())

        return {
            'total_triggers': len(self.store.triggers),
            'active_triggers': len(active),
            'high_priority_triggers': sum(1 for _, score in ranked if score >= self.config.active_threshold),
            'archived_triggers': len(self.store.triggers) - len(active),
            'total_memories': len(memories),
            'memories_by_category': dict(Counter(m.category.value for m in memories)),
            'triggers_by_category': dict(Counter(t.category.value for t in active)),
        }

    # Maintenance

    def delete_trigger(self, trigger_id: str) -> bool:
        if not self.store.delete_trigger(trigger_id):
            logger.debug(f'Trigger {trigger_id} not found for deletion')
            return False
        self.store.save()
        return True

    def delete_memory(self, memory_id: str) -> bool:
        if not self.store.delete_memory(memory_id):
            logger.debug(f'Memory {memory_id} not found for deletion')
            return False
        self.store.save()
        return True

    def clear_all(self) -> None:
        self.store.clear()
        logger.info('Cleared all triggers and memories')

    def export_data(self) -> Dict[str, Any]:
        """Snapshot both tables as one JSON-serializable document."""
        return {
            'triggers': [t.to_dict() for t in self.store.triggers.values()],
            'memories': [m.to_dict() for m in self.store.memories.values()],
            'exportedAt': to_iso(self.clock()),
            'version': EXPORT_VERSION,
        }

    def import_data(self, data: Dict[str, Any]) -> Dict[str, int]:
        """Merge an exported document into the tables, replacing records by id.

        Raises:
            MemoryEngineError: If the document is not an export object
        """
        if not isinstance(data, dict):
            raise MemoryEngineError(f'Import expects an object, got {type(data).__name__}')
        if data.get('version') != EXPORT_VERSION:
            logger.warning(f'Importing data with version {data.get("version")!r}, expected {EXPORT_VERSION}')

        now = self.clock()
        triggers = parse_records(data.get('triggers'), Trigger.from_dict, now)
        memories = parse_records(data.get('memories'), Memory.from_dict, now)
        trigger_count, memory_count = self.store.merge(triggers, memories)
        self.store.save()

        logger.info(f'Imported {trigger_count} triggers and {memory_count} memories')
        return {'triggers': trigger_count, 'memories': memory_count}


def build_engine(app_config: Optional[AppConfig] = None, clock: Clock = utc_now) -> MemoryEngine:
    """Build an engine from application configuration."""
    if app_config is None:
        from ..utils.config import config as app_config
    backend = create_store(app_config.storage)
    oracle = create_oracle(app_config.oracle, max_triggers=app_config.scoring.max_extracted_triggers)
    return MemoryEngine(backend, oracle, app_config.scoring, app_config.storage, clock)
