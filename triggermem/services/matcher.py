"""
Matcher: two-phase message-to-trigger matching (lexical, then bounded semantic).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Set

from ..models.core import Memory, Trigger
from ..utils.config import ScoringConfig
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import Clock
from .entity_store import EntityStore
from .oracle import Oracle
from .scoring import ScoringEngine

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """Triggers activated by a message and the memories they surfaced."""
    triggers: List[Trigger] = field(default_factory=list)
    memories: List[Memory] = field(default_factory=list)
    similarities: Dict[str, float] = field(default_factory=dict)  # trigger id -> semantic score


def lexical_match(message: str, trigger: Trigger) -> bool:
    """True if the lower-cased message contains the word or a synonym."""
    text = message.lower()
    return any(term and term in text for term in [trigger.word, *trigger.synonyms])


class Matcher:
    """Select the triggers a message refers to and collect their memories."""

    def __init__(self, store: EntityStore, scoring: ScoringEngine, oracle: Oracle, config: ScoringConfig, clock: Clock):
        self.store = store
        self.scoring = scoring
        self.oracle = oracle
        self.config = config
        self.clock = clock

    async def scan(self, message: str) -> ScanResult:
        """Match a message against the active triggers.

        Phase 1 activates every active trigger found by substring. Phase 2
        asks the oracle about the best-scored leftovers, capped at
        ``semantic_candidates`` calls made one after another. Oracle failures
        count as similarity 0.

        Args:
            message: Incoming user message

        Returns:
            ScanResult with activated triggers and their memories, most
            important first
        """
        result = ScanResult()
        if not message or not message.strip():
            return result

        active = [trigger for trigger, _ in self.scoring.rank_active(self.store.triggers.values(), self.clock())]

        leftovers = []
        for trigger in active:
            if lexical_match(message, trigger):
                self._activate(trigger)
                result.triggers.append(trigger)
            else:
                leftovers.append(trigger)

        for trigger in leftovers[:self.config.semantic_candidates]:
            similarity = await self._similarity(message, trigger)
            if similarity >= self.config.similarity_threshold and self._activate(trigger):
                result.triggers.append(trigger)
                result.similarities[trigger.id] = similarity

        result.memories = self._collect_memories(result.triggers)
        logger.debug(f'Scan activated {len(result.triggers)} triggers and surfaced {len(result.memories)} memories')
        return result

    async def _similarity(self, message: str, trigger: Trigger) -> float:
        try:
            return float(await self.oracle.similarity(message, trigger.word))
        except Exception as e:
            logger.warning(f'Similarity check failed for trigger {trigger.word!r}, using 0: {e}')
            return 0.0

    def _activate(self, trigger: Trigger) -> bool:
        # The trigger may have been deleted while an oracle call was pending
        if trigger.id not in self.store.triggers:
            return False
        self.scoring.activate(trigger, self.clock())
        self.store.save()
        return True

    def _collect_memories(self, triggers: List[Trigger]) -> List[Memory]:
        seen: Set[str] = set()
        memories: List[Memory] = []
        for trigger in triggers:
            for memory_id in trigger.memory_links:
                if memory_id in seen:
                    continue
                seen.add(memory_id)
                memory = self.store.memories.get(memory_id)
                if memory is None:
                    continue
                memory.access_count += 1
                memories.append(memory)

        if memories:
            self.store.save()
        return sorted(memories, key=lambda m: m.importance, reverse=True)
