"""
Entity Store: in-memory trigger and memory tables with link maintenance and persistence.
"""

import json
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..models.core import Category, Memory, Trigger, clamp_importance, clamp_score, generate_id
from ..utils.config import StorageConfig
from ..utils.logging_config import get_logger
from ..utils.storage import KeyValueStore
from ..utils.timestamp_utils import Clock, parse_date, utc_now

logger = get_logger(__name__)


def parse_records(items: Any, factory: Callable[[Dict[str, Any], datetime], Any], now: datetime) -> List[Any]:
    """Build records from raw dicts, skipping malformed entries."""
    records = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        try:
            records.append(factory(item, now))
        except (TypeError, ValueError) as e:
            logger.warning(f'Skipping malformed record: {e}')
    return records


class EntityStore:
    """Holds both entity tables and keeps their links symmetric.

    A memory listing trigger T in ``trigger_links`` is always listed in T's
    ``memory_links`` and vice versa. Mutating methods never persist on their
    own; callers decide when to ``save``.
    """

    def __init__(self, backend: KeyValueStore, config: StorageConfig, clock: Clock = utc_now):
        self.backend = backend
        self.config = config
        self.clock = clock
        self.triggers: Dict[str, Trigger] = {}
        self.memories: Dict[str, Memory] = {}

    # Persistence

    def load(self) -> None:
        """Replace both tables with the persisted contents.

        Missing keys load as empty tables. Corrupt payloads are logged and
        load as empty; individual bad records are skipped.
        """
        now = self.clock()
        self.triggers = {t.id: t for t in self._load_records(self.config.triggers_key, Trigger.from_dict, now)}
        self.memories = {m.id: m for m in self._load_records(self.config.memories_key, Memory.from_dict, now)}

        migrated = self._migrate_legacy_memories()
        repaired = self.repair_links()
        if migrated or repaired:
            self.save()

        logger.debug(f'Loaded {len(self.triggers)} triggers and {len(self.memories)} memories')

    def _load_records(self, key: str, factory: Callable[[Dict[str, Any], datetime], Any], now: datetime) -> List[Any]:
        return parse_records(self._read_json_list(key), factory, now)

    def _read_json_list(self, key: str) -> List[Any]:
        raw = self.backend.get(key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f'Corrupt data under storage key {key}, treating as empty: {e}')
            return []
        if not isinstance(data, list):
            logger.error(f'Expected list under storage key {key}, got {type(data).__name__}')
            return []
        return data

    def _migrate_legacy_memories(self) -> int:
        """Import the flat v1 memory list when no v2 memories exist."""
        if self.memories:
            return 0
        legacy = self._read_json_list(self.config.legacy_memories_key)
        migrated = 0
        for item in legacy:
            if not isinstance(item, dict) or not isinstance(item.get('content'), str) or not item['content'].strip():
                continue
            self.add_memory(item['content'],
                            category=Category.parse(item.get('category')),
                            importance=item.get('importance', 5),
                            trigger_ids=[])
            migrated += 1
        if migrated:
            logger.info(f'Migrated {migrated} legacy memories')
        return migrated

    def save(self) -> None:
        """Write both tables in full. Backend failures propagate."""
        self.backend.set(self.config.triggers_key, json.dumps([t.to_dict() for t in self.triggers.values()], ensure_ascii=False))
        self.backend.set(self.config.memories_key, json.dumps([m.to_dict() for m in self.memories.values()], ensure_ascii=False))

    def get_last_decay(self) -> Optional[date]:
        return parse_date(self.backend.get(self.config.last_decay_key))

    def set_last_decay(self, day: date) -> None:
        self.backend.set(self.config.last_decay_key, day.isoformat())

    # Creation and linking

    def add_trigger(self, word: str, category: Category, score: int, synonyms: Iterable[str] = ()) -> Trigger:
        trigger = Trigger(id=generate_id(), word=word, created_at=self.clock(), score=clamp_score(score), category=category)
        trigger.add_synonyms(list(synonyms))
        self.triggers[trigger.id] = trigger
        return trigger

    def add_memory(self, content: str, category: Category, importance: Any, trigger_ids: Iterable[str]) -> Memory:
        memory = Memory(id=generate_id(),
                        content=content.strip(),
                        created_at=self.clock(),
                        category=category,
                        importance=clamp_importance(importance))
        self.memories[memory.id] = memory
        for trigger_id in trigger_ids:
            self.link(memory.id, trigger_id)
        return memory

    def link(self, memory_id: str, trigger_id: str) -> bool:
        """Link a memory and a trigger in both directions (idempotent)."""
        memory = self.memories.get(memory_id)
        trigger = self.triggers.get(trigger_id)
        if memory is None or trigger is None:
            return False
        if trigger_id not in memory.trigger_links:
            memory.trigger_links.append(trigger_id)
        if memory_id not in trigger.memory_links:
            trigger.memory_links.append(memory_id)
        return True

    # Lookup

    def find_trigger_by_word(self, word: str) -> Optional[Trigger]:
        for trigger in self.triggers.values():
            if trigger.word == word:
                return trigger
        return None

    # Deletion

    def delete_trigger(self, trigger_id: str) -> bool:
        """Remove a trigger and every memory back-reference to it."""
        trigger = self.triggers.pop(trigger_id, None)
        if trigger is None:
            return False
        for memory in self.memories.values():
            if trigger_id in memory.trigger_links:
                memory.trigger_links = [t for t in memory.trigger_links if t != trigger_id]
        return True

    def delete_memory(self, memory_id: str) -> bool:
        """Remove a memory and every trigger back-reference to it."""
        memory = self.memories.pop(memory_id, None)
        if memory is None:
            return False
        for trigger in self.triggers.values():
            if memory_id in trigger.memory_links:
                trigger.memory_links = [m for m in trigger.memory_links if m != memory_id]
        return True

    def clear(self) -> None:
        """Empty both tables and drop every persisted key."""
        self.triggers.clear()
        self.memories.clear()
        for key in (self.config.triggers_key, self.config.memories_key, self.config.last_decay_key):
            self.backend.delete(key)

    # Bulk

    def merge(self, triggers: Iterable[Trigger], memories: Iterable[Memory]) -> Tuple[int, int]:
        """Insert or replace records by id, then restore link symmetry."""
        trigger_count = memory_count = 0
        for trigger in triggers:
            self.triggers[trigger.id] = trigger
            trigger_count += 1
        for memory in memories:
            self.memories[memory.id] = memory
            memory_count += 1
        self.repair_links()
        return trigger_count, memory_count

    def repair_links(self) -> int:
        """Drop dangling ids and add missing back-references.

        Returns:
            Number of link entries added or removed
        """
        fixes = 0
        for trigger in self.triggers.values():
            kept = [m for m in trigger.memory_links if m in self.memories]
            fixes += len(trigger.memory_links) - len(kept)
            trigger.memory_links = kept
        for memory in self.memories.values():
            kept = [t for t in memory.trigger_links if t in self.triggers]
            fixes += len(memory.trigger_links) - len(kept)
            memory.trigger_links = kept

        for trigger in self.triggers.values():
            for memory_id in trigger.memory_links:
                memory = self.memories[memory_id]
                if trigger.id not in memory.trigger_links:
                    memory.trigger_links.append(trigger.id)
                    fixes += 1
        for memory in self.memories.values():
            for trigger_id in memory.trigger_links:
                trigger = self.triggers[trigger_id]
                if memory.id not in trigger.memory_links:
                    trigger.memory_links.append(memory.id)
                    fixes += 1

        if fixes:
            logger.warning(f'Repaired {fixes} inconsistent trigger/memory links')
        return fixes
