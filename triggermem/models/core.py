"""
Core data models for the trigger/memory engine.
"""

import unicodedata
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.timestamp_utils import parse_iso, to_iso

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
DEFAULT_IMPORTANCE = 5


class Category(str, Enum):
    """Closed set of classification tags, with OTHER as the fallback."""
    FAMILY = 'famille'
    WORK = 'travail'
    LEISURE = 'loisirs'
    HEALTH = 'sante'
    EMOTIONS = 'emotions'
    PREFERENCES = 'preferences'
    PROJECTS = 'projets'
    SOCIAL = 'social'
    PLACE = 'lieu'
    OTHER = 'autre'

    @classmethod
    def parse(cls, value: Any) -> 'Category':
        """Map a free-form tag onto a known category, OTHER if unknown."""
        if isinstance(value, Category):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        text = unicodedata.normalize('NFKD', value.strip().lower())
        text = ''.join(c for c in text if not unicodedata.combining(c))
        try:
            return cls(text)
        except ValueError:
            return cls.OTHER

    @property
    def label(self) -> str:
        return self.value.capitalize()


def generate_id() -> str:
    return uuid.uuid4().hex


def normalize_word(word: Any) -> str:
    """Lower-case and trim a keyword; non-strings normalize to ''."""
    if not isinstance(word, str):
        return ''
    return word.strip().lower()


def clamp_importance(value: Any) -> int:
    try:
        importance = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_IMPORTANCE
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, importance))


def clamp_score(value: Any) -> int:
    try:
        score = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, score)


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def string_list(value: Any) -> List[str]:
    """Stored id or word list; anything but a list reads as empty."""
    if not isinstance(value, list):
        return []
    return _unique([str(item) for item in value if isinstance(item, (str, int))])


@dataclass
class Trigger:
    """A keyword (with synonyms) that surfaces linked memories."""
    id: str
    word: str  # Normalized canonical keyword
    created_at: datetime
    synonyms: List[str] = field(default_factory=list)  # Ordered set, never contains word
    score: int = 0  # Stored base score, decayed daily
    usage_count: int = 0
    last_used: Optional[datetime] = None
    memory_links: List[str] = field(default_factory=list)  # Memory ids (back-references)
    category: Category = Category.OTHER

    def add_synonyms(self, candidates: List[str]) -> List[str]:
        """Merge new synonyms case-insensitively, returning the ones added."""
        added = []
        for candidate in candidates:
            synonym = normalize_word(candidate)
            if not synonym or synonym == self.word or synonym in self.synonyms:
                continue
            self.synonyms.append(synonym)
            added.append(synonym)
        return added

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'word': self.word,
            'synonyms': list(self.synonyms),
            'score': self.score,
            'usageCount': self.usage_count,
            'lastUsed': to_iso(self.last_used),
            'memoryLinks': list(self.memory_links),
            'category': self.category.value,
            'createdAt': to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_created_at: datetime) -> 'Trigger':
        """Build a trigger from its stored form, clamping out-of-range values.

        Raises:
            ValueError: If the record has no id or no usable word
        """
        trigger_id = data.get('id')
        word = normalize_word(data.get('word'))
        if not trigger_id or not word:
            raise ValueError('Trigger record requires id and word')

        trigger = cls(id=str(trigger_id),
                      word=word,
                      created_at=parse_iso(data.get('createdAt')) or default_created_at,
                      score=clamp_score(data.get('score', 0)),
                      usage_count=clamp_score(data.get('usageCount')),
                      last_used=parse_iso(data.get('lastUsed')),
                      memory_links=string_list(data.get('memoryLinks')),
                      category=Category.parse(data.get('category')))
        trigger.add_synonyms(string_list(data.get('synonyms')))
        return trigger


@dataclass
class Memory:
    """A stored fact about the user, reachable from its linked triggers."""
    id: str
    content: str  # Third-person summary
    created_at: datetime
    category: Category = Category.OTHER
    importance: int = DEFAULT_IMPORTANCE  # 1-10
    trigger_links: List[str] = field(default_factory=list)  # Trigger ids
    access_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'content': self.content,
            'category': self.category.value,
            'importance': self.importance,
            'triggerLinks': list(self.trigger_links),
            'createdAt': to_iso(self.created_at),
            'accessCount': self.access_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_created_at: datetime) -> 'Memory':
        """Build a memory from its stored form.

        Raises:
            ValueError: If the record has no id or no content
        """
        memory_id = data.get('id')
        content = data.get('content')
        if not memory_id or not isinstance(content, str) or not content.strip():
            raise ValueError('Memory record requires id and content')

        return cls(id=str(memory_id),
                   content=content.strip(),
                   created_at=parse_iso(data.get('createdAt')) or default_created_at,
                   category=Category.parse(data.get('category')),
                   importance=clamp_importance(data.get('importance', DEFAULT_IMPORTANCE)),
                   trigger_links=string_list(data.get('triggerLinks')),
                   access_count=clamp_score(data.get('accessCount')))


@dataclass
class ExtractedMemory:
    """Memory summary proposed by the extraction oracle."""
    content: str
    category: Category = Category.OTHER
    importance: int = DEFAULT_IMPORTANCE


@dataclass
class ExtractedTrigger:
    """Trigger word proposed by the extraction oracle."""
    word: str
    category: Category = Category.OTHER
    synonyms: List[str] = field(default_factory=list)


@dataclass
class Extraction:
    """Structured result of analysing one message."""
    important: bool
    memory: Optional[ExtractedMemory] = None
    triggers: List[ExtractedTrigger] = field(default_factory=list)
