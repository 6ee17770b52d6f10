"""
Extractor: turns an oracle analysis of a message into triggers and a linked memory.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..models.core import DEFAULT_IMPORTANCE, ExtractedTrigger, Extraction, Memory, Trigger, normalize_word
from ..utils.config import ScoringConfig
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import Clock
from .entity_store import EntityStore
from .oracle import Oracle
from .scoring import ScoringEngine
from .synonyms import expand

logger = get_logger(__name__)

MIN_TRIGGER_LENGTH = 3


@dataclass
class ExtractionOutcome:
    """Entities produced or reinforced by one extraction pass."""
    memory: Optional[Memory] = None
    triggers: List[Trigger] = field(default_factory=list)
    created_trigger_ids: List[str] = field(default_factory=list)


class Extractor:
    """Reconcile oracle proposals with the existing trigger table."""

    def __init__(self, store: EntityStore, scoring: ScoringEngine, oracle: Oracle, config: ScoringConfig, clock: Clock):
        self.store = store
        self.scoring = scoring
        self.oracle = oracle
        self.config = config
        self.clock = clock

    async def extract_and_store(self, message: str) -> Optional[ExtractionOutcome]:
        """Analyse a message and store what is worth remembering.

        Nothing is written when the oracle fails, finds no JSON object or
        marks the message unimportant. Otherwise the tables are persisted
        once, after every trigger and the memory have been reconciled.

        Args:
            message: Raw user message

        Returns:
            ExtractionOutcome, or None when nothing was extracted
        """
        if not message or not message.strip():
            return None

        try:
            extraction = await self.oracle.extract(message)
        except Exception as e:
            logger.warning(f'Extraction oracle failed: {e}')
            return None

        if extraction is None or not extraction.important:
            logger.debug('Message not marked important, nothing stored')
            return None

        outcome = self.reconcile(extraction)
        self.store.save()

        logger.debug(f'Extraction stored {len(outcome.triggers)} triggers '
                     f'({len(outcome.created_trigger_ids)} new), memory: {outcome.memory is not None}')
        return outcome

    def reconcile(self, extraction: Extraction) -> ExtractionOutcome:
        """Apply an extraction to the tables without persisting."""
        outcome = ExtractionOutcome()
        seen_words = set()

        for proposed in extraction.triggers[:self.config.max_extracted_triggers]:
            word = normalize_word(proposed.word)
            if not word or word in seen_words:
                continue
            seen_words.add(word)

            trigger = self._reuse(word, proposed)
            if trigger is None:
                if len(word) < MIN_TRIGGER_LENGTH:
                    logger.debug(f'Dropping short trigger word {word!r}')
                    continue
                trigger = self._create(word, proposed)
                outcome.created_trigger_ids.append(trigger.id)
            outcome.triggers.append(trigger)

        if extraction.memory is not None:
            outcome.memory = self.store.add_memory(extraction.memory.content,
                                                   category=extraction.memory.category,
                                                   importance=extraction.memory.importance,
                                                   trigger_ids=[t.id for t in outcome.triggers])
        return outcome

    def _reuse(self, word: str, proposed: ExtractedTrigger) -> Optional[Trigger]:
        trigger = self.store.find_trigger_by_word(word)
        if trigger is None:
            return None
        self.scoring.activate(trigger, self.clock())
        added = trigger.add_synonyms(proposed.synonyms)
        if added:
            logger.debug(f'Added synonyms {added} to trigger {word!r}')
        return trigger

    def _create(self, word: str, proposed: ExtractedTrigger) -> Trigger:
        # Static expansion applies only at creation; reused triggers merge oracle synonyms alone
        synonyms = expand(word) + list(proposed.synonyms)
        return self.store.add_trigger(word,
                                      category=proposed.category,
                                      score=self.scoring.initial_score(DEFAULT_IMPORTANCE),
                                      synonyms=synonyms)
