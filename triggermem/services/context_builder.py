"""
Context Builder: renders the memories relevant to a message as prompt text.
"""

from typing import List

from ..models.core import Memory
from ..utils.config import ScoringConfig
from ..utils.logging_config import get_logger
from .entity_store import EntityStore
from .matcher import Matcher

logger = get_logger(__name__)

CONTEXT_HEADER = 'Known information about the user:'


def recent_memories(store: EntityStore, limit: int) -> List[Memory]:
    """Newest memories first."""
    ordered = sorted(store.memories.values(), key=lambda m: m.created_at, reverse=True)
    return ordered[:limit]


def format_context(memories: List[Memory]) -> str:
    if not memories:
        return ''
    lines = [f'- [{m.category.label}] {m.content}' for m in memories]
    return '\n'.join([CONTEXT_HEADER, *lines])


class ContextBuilder:

    def __init__(self, store: EntityStore, matcher: Matcher, config: ScoringConfig):
        self.store = store
        self.matcher = matcher
        self.config = config

    async def get_context_for_message(self, message: str) -> str:
        """Scan a message and render the matched plus recent important memories.

        Matched memories come first (by importance), followed by up to
        ``recent_context_memories`` of the newest memories with importance
        of at least ``recent_importance_min`` that the scan did not return.
        An empty string means no context is available.
        """
        scan = await self.matcher.scan(message)
        matched_ids = {m.id for m in scan.memories}

        supplement = [
            m for m in recent_memories(self.store, self.config.recent_context_memories)
            if m.importance >= self.config.recent_importance_min and m.id not in matched_ids
        ]

        memories = scan.memories + supplement
        logger.debug(f'Context built from {len(scan.memories)} matched and {len(supplement)} recent memories')
        return format_context(memories)
